"""Capture adapter: Playwright screenshots plus DOM and computed-style summaries."""
import io
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup
from colorthief import ColorThief
from playwright.async_api import Page, async_playwright

from canonizer.agents.colors import rgb_to_hex
from canonizer.agents.exceptions import CaptureError
from canonizer.agents.interfaces import CaptureResult, Screenshot
from canonizer.app.config import Settings
from canonizer.app.logger import logger

SETTLE_WAIT_MS = 3000
SCROLL_WAIT_MS = 500
STYLE_ELEMENT_LIMIT = 1000

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)

COMPUTED_STYLES_JS = """
(limit) => {
    const colors = new Set(), fonts = new Set(), fontSizes = new Set(), fontWeights = new Set();
    const spacing = new Set(), borderRadius = new Set(), shadows = new Set();
    const toHex = (color) => {
        if (!color || color === 'transparent' || color === 'rgba(0, 0, 0, 0)') return null;
        const match = color.match(/\\d+/g);
        if (color.startsWith('rgb') && match && match.length >= 3) {
            return '#' + match.slice(0, 3).map(x => parseInt(x).toString(16).padStart(2, '0')).join('');
        }
        return color;
    };
    Array.from(document.querySelectorAll('body, body *')).slice(0, limit).forEach(el => {
        const s = window.getComputedStyle(el);
        if (s.display === 'none' || s.visibility === 'hidden') return;
        [toHex(s.color), toHex(s.backgroundColor)].forEach(c => c && colors.add(c));
        const family = s.fontFamily.split(',')[0].replace(/['"]/g, '').trim();
        if (family) fonts.add(family);
        if (s.fontSize && s.fontSize !== '0px') fontSizes.add(s.fontSize);
        if (s.fontWeight) fontWeights.add(s.fontWeight);
        if (s.padding && s.padding !== '0px') spacing.add(s.padding);
        if (s.margin && s.margin !== '0px') spacing.add(s.margin);
        if (s.borderRadius && s.borderRadius !== '0px') borderRadius.add(s.borderRadius);
        if (s.boxShadow && s.boxShadow !== 'none') shadows.add(s.boxShadow);
    });
    return {
        colors: Array.from(colors).sort(),
        fonts: Array.from(fonts),
        font_sizes: Array.from(fontSizes).sort((a, b) => parseFloat(a) - parseFloat(b)),
        font_weights: Array.from(fontWeights).sort((a, b) => parseInt(a) - parseInt(b)),
        spacing: Array.from(spacing).slice(0, 50),
        border_radius: Array.from(borderRadius).slice(0, 20),
        shadows: Array.from(shadows).slice(0, 20),
    };
}
"""


def summarize_dom(html: str) -> Dict[str, Any]:
    """Title, meta tags, headings, sample links/images and structure counts of a page."""
    soup = BeautifulSoup(html, "html.parser")
    body = soup.body or soup

    meta = {}
    for tag in soup.find_all("meta"):
        name = tag.get("name") or tag.get("property")
        content = tag.get("content")
        if name and content:
            meta[name] = content

    headings = [
        {
            "tag": heading.name,
            "text": heading.get_text(strip=True)[:200],
            "classes": heading.get("class", []),
        }
        for heading in soup.find_all(["h1", "h2", "h3", "h4", "h5", "h6"])
    ]
    links = [
        {"text": link.get_text(strip=True)[:100], "href": link.get("href"), "classes": link.get("class", [])}
        for link in soup.find_all("a")[:50]
    ]
    images = [
        {"src": img.get("src"), "alt": img.get("alt", ""), "classes": img.get("class", [])}
        for img in soup.find_all("img")[:20]
    ]

    return {
        "title": soup.title.get_text(strip=True) if soup.title else "",
        "meta": meta,
        "headings": headings,
        "links": links,
        "images": images,
        "structure": {
            "sections": len(body.find_all(["section", "article", "main", "header", "footer"])),
            "buttons": len(body.select('button, [role="button"], a.btn, a.button')),
            "inputs": len(body.find_all(["input", "textarea", "select"])),
            "cards": len(body.select('[class*="card"]')),
        },
    }


def hero_palette(image: bytes, color_count: int = 6) -> List[str]:
    """Dominant colors of a screenshot as hex strings."""
    color_thief = ColorThief(io.BytesIO(image))
    palette = color_thief.get_palette(color_count=color_count, quality=5)
    return [rgb_to_hex(rgb) for rgb in palette]


class PlaywrightCapture:
    """Headless Chromium capture of one page."""

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or Settings()
        self.timeout_ms = settings.capture_timeout_ms
        self.viewport = {"width": settings.viewport_width, "height": settings.viewport_height}
        self.max_screenshots = settings.max_screenshots

    async def capture(self, url: str) -> CaptureResult:
        logger.info(f"Starting capture for {url}")
        try:
            async with async_playwright() as playwright:
                browser = await playwright.chromium.launch(headless=True)
                try:
                    context = await browser.new_context(viewport=self.viewport, user_agent=USER_AGENT)
                    page = await context.new_page()
                    page.set_default_timeout(self.timeout_ms)
                    await self._navigate(page, url)

                    screenshots = await self._screenshots(page)
                    html = await page.content()
                    style_summary = await page.evaluate(COMPUTED_STYLES_JS, STYLE_ELEMENT_LIMIT)
                finally:
                    await browser.close()
        except CaptureError:
            raise
        except Exception as e:
            raise CaptureError(f"Could not capture {url}: {e}") from e

        if not screenshots:
            raise CaptureError(f"No screenshots captured for {url}")

        try:
            style_summary["hero_palette"] = hero_palette(screenshots[0].data)
        except Exception as e:
            logger.warning(f"Hero palette extraction failed (non-critical): {e}")

        logger.info(f"Captured {len(screenshots)} screenshots from {url}")
        return CaptureResult(
            url=url,
            screenshots=screenshots,
            dom_summary=summarize_dom(html),
            style_summary=style_summary,
        )

    async def _navigate(self, page: Page, url: str):
        try:
            await page.goto(url, wait_until="domcontentloaded", timeout=self.timeout_ms)
        except Exception as e:
            logger.warning(f"Initial navigation failed, retrying with load event: {e}")
            await page.goto(url, wait_until="load", timeout=self.timeout_ms)
        # Wait for dynamic content to settle
        await page.wait_for_timeout(SETTLE_WAIT_MS)

    async def _screenshots(self, page: Page) -> List[Screenshot]:
        screenshots = [Screenshot("hero.png", await page.screenshot(full_page=False))]

        viewport_height = self.viewport["height"]
        page_height = await page.evaluate("() => document.body.scrollHeight")
        sections = min(self.max_screenshots, -(-page_height // viewport_height))
        for index in range(1, sections):
            await page.evaluate("(y) => window.scrollTo(0, y)", index * viewport_height)
            await page.wait_for_timeout(SCROLL_WAIT_MS)
            screenshots.append(Screenshot(f"section_{index}.png", await page.screenshot(full_page=False)))

        await page.evaluate("() => window.scrollTo(0, 0)")
        await page.wait_for_timeout(SCROLL_WAIT_MS)

        # Kept as an artifact only; too tall for the vision model
        full_page = await page.screenshot(full_page=True)
        screenshots.append(Screenshot("full_page.png", full_page, analyzable=False))
        return screenshots
