"""Markdown -> sanitized HTML transform with heading collection.

Stage order is fixed:

    parse (markdown-it, GFM) -> render (raw HTML passthrough) -> re-parse (BeautifulSoup)
    -> sanitize (nh3, optional) -> heading ids -> heading anchors -> external links
    -> collect headings -> serialize

Raw HTML must be part of the tree before the sanitize stage runs, otherwise
embedded markup would reach the output unfiltered.
"""

import re
from functools import lru_cache
from urllib.parse import urlsplit

import nh3
import structlog
from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString
from markdown_it import MarkdownIt
from mdit_py_plugins.tasklists import tasklists_plugin

from mdcontent.core.models import Heading, RenderOptions, RenderResult
from mdcontent.core.utils.slug import Slugger


log = structlog.get_logger()

HEADING_TAG_RE = re.compile(r'^h([1-6])$')
EXTERNAL_SCHEMES = {'http', 'https'}
SAFE_REL = 'noopener noreferrer'

# Allow-list applied when sanitizing; anything not listed is dropped.
ALLOWED_TAGS = {
    'a', 'abbr', 'b', 'blockquote', 'br', 'caption', 'code', 'dd', 'del', 'details', 'div',
    'dl', 'dt', 'em', 'figcaption', 'figure', 'h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'hr', 'i',
    'img', 'input', 'ins', 'kbd', 'li', 'mark', 'ol', 'p', 'pre', 'q', 's', 'samp', 'section',
    'small', 'span', 'strike', 'strong', 'sub', 'summary', 'sup', 'table', 'tbody', 'td',
    'tfoot', 'th', 'thead', 'tr', 'u', 'ul', 'var',
}
ALLOWED_ATTRIBUTES = {
    '*':     {'title', 'lang', 'dir'},
    'a':     {'href'},
    'img':   {'src', 'alt', 'width', 'height'},
    'code':  {'class'},
    'pre':   {'class'},
    'div':   {'class'},
    'span':  {'class'},
    'ul':    {'class'},
    'ol':    {'class', 'start'},
    'li':    {'class'},
    'input': {'class', 'checked', 'disabled'},
    'td':    {'style', 'colspan', 'rowspan'},
    'th':    {'style', 'colspan', 'rowspan'},
}
ALLOWED_ATTRIBUTE_VALUES = {'input': {'type': {'checkbox'}}}
ALLOWED_STYLE_PROPERTIES = {'text-align'}
ALLOWED_URL_SCHEMES = {'http', 'https', 'mailto', 'tel'}


@lru_cache(maxsize=2)
def _make_parser(allow_html: bool) -> MarkdownIt:
    """GFM-like markdown-it instance; linkify provides bare-URL autolinks."""
    return (
        MarkdownIt('gfm-like', options_update={'html': allow_html, 'linkify': True})
        .use(tasklists_plugin)
    )


def _to_tree(body: str, allow_html: bool) -> BeautifulSoup:
    md = _make_parser(allow_html)
    env: dict = {}
    tokens = md.parse(body, env)
    html = md.renderer.render(tokens, md.options, env)
    return BeautifulSoup(html, 'html.parser')


def _sanitize(soup: BeautifulSoup) -> BeautifulSoup:
    cleaned = nh3.clean(
        str(soup),
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        tag_attribute_values=ALLOWED_ATTRIBUTE_VALUES,
        filter_style_properties=ALLOWED_STYLE_PROPERTIES,
        url_schemes=ALLOWED_URL_SCHEMES,
        link_rel=None,
    )
    return BeautifulSoup(cleaned, 'html.parser')


def _headings(soup: BeautifulSoup) -> list[Tag]:
    return [el for el in soup.find_all(True) if HEADING_TAG_RE.match(el.name)]


def _assign_heading_ids(soup: BeautifulSoup) -> None:
    slugger = Slugger()
    headings = _headings(soup)
    for el in headings:
        if el.get('id'):
            slugger.reserve(el['id'])
    for el in headings:
        if not el.get('id'):
            el['id'] = slugger.slug(el.get_text())


def _autolink_headings(soup: BeautifulSoup) -> None:
    for el in _headings(soup):
        if not el.get('id'):
            continue
        anchor = soup.new_tag('a', attrs={'aria-hidden': 'true', 'tabindex': '-1', 'href': f"#{el['id']}"})
        anchor.append(soup.new_tag('span', attrs={'class': 'icon icon-link'}))
        el.insert(0, anchor)


def is_external(href: str, internal_hosts: tuple[str, ...] = ()) -> bool:
    """Absolute http(s) or protocol-relative URL pointing off-site."""
    parts = urlsplit(href.strip())
    if not parts.netloc:
        return False
    if parts.scheme and parts.scheme.lower() not in EXTERNAL_SCHEMES:
        return False
    return (parts.hostname or '').lower() not in {h.lower() for h in internal_hosts}


def _rewrite_external_links(soup: BeautifulSoup, target: str, internal_hosts: tuple[str, ...]) -> None:
    for el in soup.find_all('a', href=True):
        if is_external(el['href'], internal_hosts):
            # target and rel are always written as a pair
            el['target'] = target
            el['rel'] = SAFE_REL


def _direct_text(el: Tag) -> str:
    return ''.join(
        str(child) for child in el.children
        if isinstance(child, NavigableString) and not isinstance(child, PreformattedString)
    )


def _collect_headings(soup: BeautifulSoup) -> tuple[Heading, ...]:
    """Read-only walk over every element in document order."""
    collected = []
    for el in soup.find_all(True):
        m = HEADING_TAG_RE.match(el.name)
        if m:
            collected.append(Heading(depth=int(m.group(1)), text=_direct_text(el), id=el.get('id', '')))
    return tuple(collected)


def render(body: str, options: RenderOptions | None = None) -> RenderResult:
    """Run the full transform over a markdown body (frontmatter already removed)."""
    options = options or RenderOptions()
    soup = _to_tree(body, options.allow_html)
    if options.sanitize:
        soup = _sanitize(soup)
    if options.generate_heading_ids:
        _assign_heading_ids(soup)
        _autolink_headings(soup)
    if options.external_link_target:
        _rewrite_external_links(soup, options.external_link_target, options.internal_hosts)
    headings = _collect_headings(soup)
    html = str(soup)
    log.debug("markdown_rendered", chars=len(body), headings=len(headings), sanitized=options.sanitize)
    return RenderResult(html=html, headings=headings)


def render_html(body: str, options: RenderOptions | None = None) -> str:
    """HTML only; see render()."""
    return render(body, options).html
