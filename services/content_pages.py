import bleach

ALLOWED_TAGS = [
    "p", "br", "strong", "em", "u",
    "h1", "h2", "h3", "h4", "h5", "h6",
    "ul", "ol", "li", "a", "img", "blockquote", "code", "pre",
]
ALLOWED_ATTRIBUTES = {"*": ["href", "src", "alt", "title", "target", "rel"]}


def sanitize_html(content: str) -> str:
    """Strip every tag and attribute outside the allow-list (scripts, handlers, styles)."""
    return bleach.clean(
        content or "",
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        strip=True,
    )
