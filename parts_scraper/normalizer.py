# normalizer.py
import re
from typing import Optional
from urllib.parse import urljoin, urlsplit

from slugify import slugify

PLACEHOLDER_TOKEN = "{width}"

_WS = re.compile(r"\s+")


def clean_text(text: Optional[str]) -> str:
    """Collapse runs of whitespace the way a browser's innerText would read."""
    if not text:
        return ""
    return _WS.sub(" ", text).strip()


def snake_key(text: Optional[str]) -> str:
    # "Made In" -> "made_in"; punctuation is left alone ("ABC-100" -> "abc-100")
    return clean_text(text).lower().replace(" ", "_")


def heading_key(text: Optional[str]) -> str:
    """Section heading text -> lookup key. Drops the first colon ("Compatibility:")."""
    return snake_key(clean_text(text).replace(":", "", 1))


def has_placeholder(src: str) -> bool:
    return PLACEHOLDER_TOKEN in src


def normalize_image_url(src: Optional[str], base_url: Optional[str] = None) -> Optional[str]:
    """
    Returns an absolute, query-less image URL, or None when the candidate is
    empty or still a size template.
    """
    if not src:
        return None
    src = src.strip()
    if not src or has_placeholder(src):
        return None
    if src.startswith("//"):
        full = f"https:{src}"
    elif src.startswith("http://") or src.startswith("https://"):
        full = src
    elif base_url:
        full = urljoin(base_url, src)
    else:
        full = f"https:{src}"
    return full.split("?", 1)[0].split("#", 1)[0]


def product_id(url: str, marker: str = "/products/") -> Optional[str]:
    """Path segment right after `marker` (".../products/<handle>?variant=1" -> "<handle>")."""
    path = urlsplit(url).path
    idx = path.find(marker)
    if idx < 0:
        return None
    rest = path[idx + len(marker):]
    segment = rest.split("/", 1)[0]
    return segment or None


def make_id(url: str, name: Optional[str] = None) -> str:
    # fallback key when a url carries no product handle
    dom = urlsplit(url).netloc
    base = slugify((name or url)[0:80])
    return f"{dom}-{base}" if base else dom
