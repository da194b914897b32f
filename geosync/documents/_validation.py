"""XML loading for route documents.

The only fatal condition for a parse is text that is not well-formed
XML.  Everything past this point degrades instead of raising.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from geosync.core.exceptions import ValidationError

if TYPE_CHECKING:
    from lxml.etree import _Element

logger = logging.getLogger("geosync.documents")


# ---------------------------------------------------------------------------
# Exceptions (public API, re-exported from __init__)
# ---------------------------------------------------------------------------


class MalformedDocumentError(ValidationError):
    """Raised when a route document is not well-formed XML."""

    default_stage = "parse_document"
    default_code = "DOCUMENT_MALFORMED"


class DocumentValidationError(ValidationError):
    """Raised when input for building a route document is unusable."""

    default_stage = "write_document"
    default_code = "DOCUMENT_INPUT_INVALID"


# ---------------------------------------------------------------------------
# XML loading
# ---------------------------------------------------------------------------


def load_xml(document: str | bytes) -> _Element:
    """Parse *document* into an element tree root.

    ``str`` input is re-encoded as UTF-8 and parsed with the encoding
    forced, so an encoding declaration inside the text cannot disagree
    with it.  ``bytes`` input honours the declaration.

    Raises:
        MalformedDocumentError: If the document is empty or not well-formed XML.
    """
    from lxml import etree  # type: ignore[attr-defined]

    if isinstance(document, str):
        content = document.encode("utf-8")
        parser = etree.XMLParser(
            resolve_entities=False, no_network=True, huge_tree=False, encoding="utf-8"
        )
    else:
        content = document
        parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=False)

    if not content.strip():
        msg = "Route document is empty"
        raise MalformedDocumentError(msg)

    try:
        root = etree.fromstring(content, parser=parser)
    except (etree.XMLSyntaxError, ValueError) as exc:
        msg = f"Not valid XML: {exc}"
        raise MalformedDocumentError(msg) from exc

    if root is None:
        msg = "Route document has no root element"
        raise MalformedDocumentError(msg)
    return root
