"""Product page scraper.

scrape_product(url) never raises. Sources, in order:

  1. Shopify product JSON (<url>.json) for /products/ URLs.
  2. The HTML page, merged field by field with priority
     JSON-LD > OpenGraph/meta tags > page content heuristics.
  3. A placeholder product when everything fails.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)


REQUEST_TIMEOUT = 20
DESCRIPTION_LIMIT = 500

BROWSER_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
                  "AppleWebKit/537.36 (KHTML, like Gecko) "
                  "Chrome/120.0.0.0 Safari/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}

PLACEHOLDER_IMAGE = "https://via.placeholder.com/800x800?text=Product"

PRICE_SELECTORS = [
    '[class*="price"]:not([class*="compare"])',
    "[data-price]",
    '[itemprop="price"]',
    ".product-price",
    ".Price",
    "#price",
]

IMAGE_SELECTORS = [
    '[class*="product"] img',
    '[class*="gallery"] img',
    "[data-zoom]",
    'img[itemprop="image"]',
    ".product-image img",
    "#product-image",
    "main img",
]

_PRICE_RE = re.compile(r"[$£€]?\s*(\d+[.,]\d{2})")
_TAG_RE = re.compile(r"<[^>]*>")


@dataclass
class ScrapedProduct:
    title: str
    price: str
    image: str
    description: str = ""
    images: list[str] = field(default_factory=list)
    video_url: str | None = None


def fallback_product(url: str | None = None) -> ScrapedProduct:
    """Deterministic placeholder, titled after the URL's host when there is one."""
    host = urlparse(url).hostname if url else None
    return ScrapedProduct(
        title=f"Product from {host}" if host else "Product",
        price="$0.00",
        image=PLACEHOLDER_IMAGE,
        description="Product description not available",
    )


def format_price(amount, currency: str = "USD") -> str | None:
    """'$19.50' for USD, 'EUR 19.50' otherwise; None if amount isn't numeric."""
    try:
        value = float(str(amount).replace(",", ""))
    except (TypeError, ValueError):
        return None
    symbol = "$" if currency == "USD" else f"{currency} "
    return f"{symbol}{value:.2f}"


# ── Shopify ───────────────────────────────────────────────────────


def is_shopify_url(url: str) -> bool:
    parsed = urlparse(url)
    host = parsed.hostname or ""
    return "shopify" in host or "/products/" in parsed.path


def scrape_shopify(url: str, session: requests.Session) -> ScrapedProduct | None:
    """Product from a Shopify storefront's <url>.json endpoint, or None."""
    json_url = re.sub(r"/?$", ".json", url.split("?")[0], count=1)
    try:
        response = session.get(
            json_url,
            headers={"User-Agent": "Mozilla/5.0 (compatible; reelcompose/1.0)"},
            timeout=REQUEST_TIMEOUT,
        )
        response.raise_for_status()
        product = response.json().get("product")
    except (requests.RequestException, ValueError, AttributeError) as e:
        logger.info("Shopify JSON unavailable for %s: %s", url, e)
        return None
    if not isinstance(product, dict):
        return None

    images = [img["src"] for img in product.get("images") or [] if img.get("src")]
    variants = product.get("variants") or []
    price = format_price(variants[0].get("price")) if variants else None
    body = _TAG_RE.sub("", product.get("body_html") or "")[:DESCRIPTION_LIMIT]
    return ScrapedProduct(
        title=product.get("title") or "Shopify Product",
        price=price or "$0.00",
        image=images[0] if images else PLACEHOLDER_IMAGE,
        description=body or product.get("description") or "",
        images=images,
    )


# ── HTML extraction ───────────────────────────────────────────────


def extract_json_ld(soup: BeautifulSoup) -> dict:
    """Fields from schema.org Product objects in JSON-LD script tags."""
    result = {}
    for tag in soup.find_all("script", type="application/ld+json"):
        try:
            data = json.loads(tag.string or "{}")
        except json.JSONDecodeError:
            continue
        items = data if isinstance(data, list) else [data]
        for item in items:
            if not isinstance(item, dict):
                continue
            kind = item.get("@type")
            if kind != "Product" and not (isinstance(kind, list) and "Product" in kind):
                continue
            if item.get("name"):
                result["title"] = item["name"]
            if item.get("description"):
                result["description"] = item["description"]

            image = item.get("image")
            if isinstance(image, str):
                result["image"] = image
            elif isinstance(image, list) and image:
                result["images"] = [i for i in image if isinstance(i, str)]
                result["image"] = image[0]
            elif isinstance(image, dict) and image.get("url"):
                result["image"] = image["url"]

            offers = item.get("offers")
            offer = offers[0] if isinstance(offers, list) and offers else offers
            if isinstance(offer, dict) and offer.get("price") is not None:
                price = format_price(offer["price"], offer.get("priceCurrency") or "USD")
                if price:
                    result["price"] = price
    return result


def _meta(soup: BeautifulSoup, *names: str) -> str | None:
    for name in names:
        tag = soup.find("meta", property=name) or soup.find("meta", attrs={"name": name})
        if tag and tag.get("content"):
            return tag["content"]
    return None


def extract_meta_tags(soup: BeautifulSoup) -> dict:
    """Fields from OpenGraph and product meta tags."""
    result = {}
    title = _meta(soup, "og:title")
    if title:
        result["title"] = title
    description = _meta(soup, "og:description", "description")
    if description:
        result["description"] = description

    images = []
    for tag in soup.find_all("meta", property="og:image"):
        src = tag.get("content")
        if src and src not in images:
            images.append(src)
    if images:
        result["image"] = images[0]
        result["images"] = images

    amount = _meta(soup, "product:price:amount", "og:price:amount")
    if amount:
        currency = _meta(soup, "product:price:currency", "og:price:currency") or "USD"
        price = format_price(amount, currency)
        if price:
            result["price"] = price

    video = _meta(soup, "og:video", "og:video:url", "og:video:secure_url")
    if video:
        result["video_url"] = video
    return result


def extract_from_content(soup: BeautifulSoup) -> dict:
    """Best-effort fields from visible page content."""
    result = {}

    h1 = soup.find("h1")
    title = h1.get_text(strip=True) if h1 else ""
    if not title and soup.title and soup.title.string:
        title = soup.title.string.split("|")[0].strip()
    if title:
        result["title"] = title

    for selector in PRICE_SELECTORS:
        el = soup.select_one(selector)
        if el is None:
            continue
        text = el.get("content") or el.get_text(" ", strip=True)
        match = _PRICE_RE.search(text or "")
        if match:
            has_symbol = re.search(r"[$£€]", text) is not None
            result["price"] = match.group(0).strip() if has_symbol else f"${match.group(1)}"
            break

    images = []
    for selector in IMAGE_SELECTORS:
        for el in soup.select(selector):
            src = el.get("data-src") or el.get("data-lazy-src") or el.get("src")
            if not src or "icon" in src or "logo" in src:
                continue
            if src.startswith("//"):
                src = f"https:{src}"
            if src not in images:
                images.append(src)
    if images:
        result["image"] = images[0]
        result["images"] = images

    for selector in ('[class*="description"]', '[itemprop="description"]', "p"):
        el = soup.select_one(selector)
        text = el.get_text(" ", strip=True)[:DESCRIPTION_LIMIT] if el else ""
        if text:
            result["description"] = text
            break
    return result


def parse_product_html(html: str, url: str | None = None) -> ScrapedProduct:
    """Merge JSON-LD, meta and content fields over the fallback product."""
    soup = BeautifulSoup(html, "html.parser")
    sources = [extract_json_ld(soup), extract_meta_tags(soup), extract_from_content(soup)]
    fallback = fallback_product()

    def pick(key, default):
        for source in sources:
            if source.get(key):
                return source[key]
        return default

    images = []
    for source in sources:
        for src in source.get("images", []):
            if src not in images:
                images.append(src)

    product = ScrapedProduct(
        title=pick("title", fallback.title),
        price=pick("price", fallback.price),
        image=pick("image", fallback.image),
        description=pick("description", fallback.description),
        images=images,
        video_url=pick("video_url", None),
    )
    if not product.images and product.image:
        product.images = [product.image]
    return product


def scrape_product(url: str, session: requests.Session | None = None) -> ScrapedProduct:
    """Scrape a product page. Never raises; falls back to a placeholder."""
    session = session or requests.Session()
    try:
        if is_shopify_url(url):
            product = scrape_shopify(url, session)
            if product is not None:
                return product

        response = session.get(url, headers=BROWSER_HEADERS, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
        return parse_product_html(response.text, url)
    except (requests.RequestException, ValueError) as e:
        logger.warning("Scraping failed for %s: %s", url, e)
        return fallback_product(url)
