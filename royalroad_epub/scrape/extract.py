"""CSS-selector based extraction of fields from HTML pages."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Dict, List, Mapping, Optional

from bs4 import BeautifulSoup, Tag

from ..errors import ExtractionError

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldRule:
    """Where to find a named value in a page.

    ``attribute`` names the attribute to read from the first node matching
    ``selector``; ``None`` reads the node's text instead.
    """

    name: str
    selector: str
    attribute: Optional[str] = None


class MarkupExtractor:
    """Pull scalar fields, repeated records and fragments out of HTML."""

    def __init__(self, *, parser: str = "html.parser") -> None:
        self.parser = parser

    def parse(self, markup: str) -> BeautifulSoup:
        return BeautifulSoup(markup, self.parser)

    def extract_field(self, doc: Tag, rule: FieldRule, *, url: Optional[str] = None) -> str:
        value = self.extract_optional(doc, rule)
        if value is None:
            raise ExtractionError(rule.name, url)
        return value

    def extract_optional(self, doc: Tag, rule: FieldRule) -> Optional[str]:
        node = doc.select_one(rule.selector)
        if node is None:
            LOGGER.debug("No node matches %r for field %s", rule.selector, rule.name)
            return None
        return self._read(node, rule.attribute)

    def extract_records(
        self,
        doc: Tag,
        container_selector: str,
        row_selector: str,
        fields: Mapping[str, Optional[str]],
        *,
        name: str = "records",
        url: Optional[str] = None,
    ) -> List[Dict[str, str]]:
        """Return one dict per ``row_selector`` match inside the container.

        Rows keep document order. ``fields`` maps each record key to the
        attribute to read, or ``None`` for the row's text. A row missing one
        of them raises :class:`ExtractionError` named ``"<name>.<key>"``.
        """

        container = doc.select_one(container_selector)
        if container is None:
            raise ExtractionError(name, url)

        records: List[Dict[str, str]] = []
        for row in container.select(row_selector):
            record: Dict[str, str] = {}
            for key, attribute in fields.items():
                value = self._read(row, attribute)
                if value is None:
                    raise ExtractionError(f"{name}.{key}", url)
                record[key] = value
            records.append(record)
        return records

    def extract_fragment(self, doc: Tag, selector: str, *, name: str, url: Optional[str] = None) -> str:
        """Return the outer HTML of the first node matching ``selector``."""

        node = doc.select_one(selector)
        if node is None:
            raise ExtractionError(name, url)
        return str(node)

    def _read(self, node: Tag, attribute: Optional[str]) -> Optional[str]:
        if attribute is None:
            return node.get_text().strip()
        value = node.get(attribute)
        if value is None:
            return None
        if isinstance(value, list):
            # multi-valued attributes such as class come back as lists
            return " ".join(value)
        return value


__all__ = ["FieldRule", "MarkupExtractor"]
