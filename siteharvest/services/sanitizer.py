import re

from bs4 import BeautifulSoup, Comment

_WHITESPACE_RE = re.compile(r"\s+")

# Page chrome and non-content tags removed before taking the raw body text
_CHROME_TAGS = ("script", "style", "nav", "footer", "header")


def collapse_whitespace(text: str) -> str:
    """Collapse every run of whitespace in *text* into a single space."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def strip_chrome(soup: BeautifulSoup) -> BeautifulSoup:
    """Remove scripts, styles, navigation, header and footer elements from *soup* in place."""
    for tag in soup.find_all(_CHROME_TAGS):
        tag.decompose()

    # Comments inside <body> would otherwise leak into get_text()
    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()

    return soup


def body_text(soup: BeautifulSoup) -> str:
    """Return the whitespace-collapsed text of *soup*'s ``<body>`` after stripping chrome."""
    strip_chrome(soup)
    node = soup.body or soup
    return collapse_whitespace(node.get_text(separator=" "))
