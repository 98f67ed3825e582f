"""Validate brand specification documents against the canonical schema."""
from dataclasses import dataclass
from typing import Any, List, Tuple, Union

from pydantic import ValidationError

from canonizer.app.models import BrandSpecification

PathPart = Union[str, int]


@dataclass(frozen=True)
class SchemaViolation:
    """One schema error, located by the path of the offending value."""
    loc: Tuple[PathPart, ...]
    error_type: str
    message: str

    @property
    def path(self) -> str:
        return format_path(self.loc)

    def __str__(self) -> str:
        return f"{self.path or '<root>'}: {self.message}"


def format_path(loc: Tuple[PathPart, ...]) -> str:
    """Render a location tuple as a dotted path (``components.2.category``)."""
    return ".".join(str(part) for part in loc)


def validate_document(document: Any) -> List[SchemaViolation]:
    """Return every schema violation in ``document``; empty means valid."""
    if not isinstance(document, dict):
        return [SchemaViolation((), "dict_type", "specification must be a JSON object")]
    try:
        BrandSpecification.model_validate(document)
    except ValidationError as exc:
        return [
            SchemaViolation(tuple(err["loc"]), err["type"], err["msg"])
            for err in exc.errors()
        ]
    return []


def is_valid(document: Any) -> bool:
    return not validate_document(document)


def format_violations(violations: List[SchemaViolation]) -> str:
    return "\n".join(str(v) for v in violations)
