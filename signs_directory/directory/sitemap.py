"""Sitemap XML rendering."""

import xml.etree.ElementTree as ET
from typing import Iterable, Tuple

from signs_directory.models import SitemapEntry

SITEMAP_NAMESPACE = "http://www.sitemaps.org/schemas/sitemap/0.9"

# (path, change frequency, priority); "" is the home page
STATIC_PAGES: Tuple[Tuple[str, str, float], ...] = (
    ("", "daily", 1.0),
    ("/sussex-signs", "weekly", 0.8),
    ("/blog", "weekly", 0.8),
    ("/blog/planning-permission-business-sign", "weekly", 0.8),
    ("/blog/shop-sign-cost-2025", "weekly", 0.8),
    ("/blog/dibond-vs-aluminium-signage", "weekly", 0.8),
    ("/calculator", "weekly", 0.8),
)


def render_sitemap(entries: Iterable[SitemapEntry]) -> bytes:
    urlset = ET.Element("urlset", xmlns=SITEMAP_NAMESPACE)
    for entry in entries:
        url = ET.SubElement(urlset, "url")
        ET.SubElement(url, "loc").text = entry.url
        ET.SubElement(url, "lastmod").text = entry.last_modified.isoformat()
        ET.SubElement(url, "changefreq").text = entry.change_frequency
        ET.SubElement(url, "priority").text = f"{entry.priority:.1f}"
    return ET.tostring(urlset, encoding="utf-8", xml_declaration=True)
