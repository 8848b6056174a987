# extractor.py
"""
Page extractor for the storefront's product template.

Works on the HTML snapshot of a rendered product page. Every field is read
independently: a failure while reading the title, the images or one of the
description tables leaves that field empty and adds a diagnostic, it never
fails the page.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from bs4 import BeautifulSoup, NavigableString

from .normalizer import clean_text, heading_key, normalize_image_url, snake_key
from .schema import ProductRecord, SectionKind

logger = logging.getLogger(__name__)

TITLE_SEL = "h1.ProductMeta__Title"
SKU_SEL = "span.ProductMeta__SkuNumber"
SLIDESHOW_SEL = ".Product__Slideshow img[data-original-src]"
GALLERY_SEL = ".ProductGallery__Carousel img[src]"
LAZY_SEL = "img[data-src]"
TABLES_SEL = ".ProductMeta__Description .TableWrapper table"
HEADING_MARK_SEL = "p strong"

# checked in order; first substring contained in the heading key wins
SECTION_PATTERNS = (
    ("oem_part_number_cross_references", SectionKind.OEM_REFERENCE),
    ("compatibility", SectionKind.COMPATIBILITY),
    ("technical_specifications", SectionKind.TECHNICAL_SPECIFICATIONS),
)

NO_IMAGES = "No images found for this product"

# elements that break a line in rendered text; inline tags (em, b, span) do not
BREAK_TAGS = frozenset({
    "br", "p", "div", "li", "ul", "ol", "tr", "td", "th", "table",
    "h1", "h2", "h3", "h4", "h5", "h6",
})


@dataclass(frozen=True)
class FieldResult:
    value: Any
    error: Optional[str] = None


def _guard(field: str, fn: Callable[[], Any], default: Any) -> FieldResult:
    try:
        return FieldResult(fn())
    except Exception as e:
        logger.warning("[EXTRACT] %s failed: %s: %s", field, type(e).__name__, e)
        return FieldResult(default, f"{field}: {type(e).__name__}: {e}")


def inner_text(node) -> str:
    """Visible text of a node the way innerText reads it, whitespace collapsed."""
    parts = []
    for el in node.descendants:
        if type(el) is NavigableString:   # comments, CDATA etc. are subclasses
            parts.append(str(el))
        elif getattr(el, "name", None) in BREAK_TAGS:
            parts.append("\n")
    return clean_text("".join(parts))


def _text(soup: BeautifulSoup, selector: str) -> str:
    node = soup.select_one(selector)
    return inner_text(node) if node else ""


def extract_images(soup: BeautifulSoup, base_url: Optional[str] = None) -> List[str]:
    """
    Slideshow originals first; the gallery only when the slideshow gave
    nothing; lazy images are always added on top. First-seen order is kept.
    """
    seen: Dict[str, None] = {}

    def add(src):
        url = normalize_image_url(src, base_url)
        if url:
            seen.setdefault(url, None)

    for img in soup.select(SLIDESHOW_SEL):
        add(img.get("data-original-src"))

    if not seen:
        for img in soup.select(GALLERY_SEL):
            add(img.get("src"))

    for img in soup.select(LAZY_SEL):
        add(img.get("data-src"))

    return list(seen)


def classify_heading(key: str) -> Optional[SectionKind]:
    for pattern, kind in SECTION_PATTERNS:
        if pattern in key:
            return kind
    return None


def _table_section(table, keep_unclassified: bool):
    """Returns (kind, rows) for one table, or (None, {}) when it is dropped."""
    rows = table.select("tr")
    if not rows or rows[0].select_one(HEADING_MARK_SEL) is None:
        return None, {}

    kind = classify_heading(heading_key(inner_text(rows[0])))
    if kind is None:
        if not keep_unclassified:
            return None, {}
        kind = SectionKind.UNCLASSIFIED

    pairs: Dict[str, str] = {}
    for row in rows[1:]:
        cells = row.select("td")
        if len(cells) != 2:
            continue
        key = snake_key(inner_text(cells[0]))
        if not key:
            continue
        pairs[key] = inner_text(cells[1])
    return kind, pairs


def extract_sections(soup: BeautifulSoup, keep_unclassified: bool = False, errors: Optional[List[str]] = None):
    sections: Dict[SectionKind, Dict[str, str]] = {}
    for i, table in enumerate(soup.select(TABLES_SEL)):
        res = _guard(f"sections[table {i}]", lambda: _table_section(table, keep_unclassified), (None, {}))
        if res.error and errors is not None:
            errors.append(res.error)
        kind, pairs = res.value
        if kind is None:
            continue
        # later rows (and later tables of the same kind) overwrite earlier keys
        sections.setdefault(kind, {}).update(pairs)
    return sections


def extract_product(
    html: str,
    url: Optional[str],
    scrape_date: str,
    keep_unclassified: bool = False,
) -> ProductRecord:
    diagnostics: List[str] = []

    try:
        soup = BeautifulSoup(html or "", "lxml")
    except Exception as e:
        logger.warning("[EXTRACT] could not parse document for %s: %s", url, e)
        return ProductRecord(scrape_date=scrape_date, diagnostics=[f"document: {e}", NO_IMAGES])

    name = _guard("product_name", lambda: _text(soup, TITLE_SEL), "")
    sku = _guard("part_number", lambda: _text(soup, SKU_SEL), "")
    images = _guard("images", lambda: extract_images(soup, url), [])
    section_errors: List[str] = []
    sections = _guard(
        "sections",
        lambda: extract_sections(soup, keep_unclassified, section_errors),
        {},
    )

    for res in (name, sku, images):
        if res.error:
            diagnostics.append(res.error)
    diagnostics.extend(section_errors)
    if sections.error:
        diagnostics.append(sections.error)
    if not images.value:
        diagnostics.append(NO_IMAGES)

    return ProductRecord(
        product_name=name.value,
        part_number=sku.value,
        images=images.value,
        sections=sections.value,
        scrape_date=scrape_date,
        diagnostics=diagnostics,
    )
