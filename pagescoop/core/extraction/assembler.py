"""Assembles extracted field values into row-like records."""

import logging
from typing import Any

from bs4 import Tag

from pagescoop.core.extraction.extractor import FieldExtractor
from pagescoop.core.selector import SelectorEngine
from pagescoop.models.commands import FieldCommand, ScopeCommand

logger = logging.getLogger(__name__)

Record = dict[str, Any]


class RecordAssembler:
    """Zips per-field value lists into records, optionally per scope match.

    Fields are zipped by position: record ``i`` holds the ``i``-th value of
    every field that has one. Fields with fewer matches simply stop
    contributing, so records can be ragged.

    Attributes:
        engine: Selector engine used to resolve field and scope selectors
        extractor: Field extractor used for each matched node

    """

    def __init__(self, extractor: FieldExtractor, engine: SelectorEngine | None = None):
        """Initialize the assembler.

        Args:
            extractor: Field extractor for the current page
            engine: Selector engine. Defaults to a new SelectorEngine.

        """
        self.extractor = extractor
        self.engine = engine or SelectorEngine()

    def assemble(
        self,
        root: Tag,
        scopes: list[ScopeCommand],
        fields: list[FieldCommand],
    ) -> list[Record]:
        """Build records for a page.

        Args:
            root: Document to extract from
            scopes: Scope commands; each match becomes the root for all fields
            fields: Field commands

        Returns:
            Records in order: per scope command, per scope match, per index.

        """
        if not fields:
            return []

        if not scopes:
            return self.extract_records(root, fields)

        records: list[Record] = []
        for scope in scopes:
            if not scope.selector:
                continue
            parents = self.engine.resolve(scope.selector, root)
            logger.debug(f"Scope '{scope.selector}' matched {len(parents)} parent(s)")
            for parent in parents:
                records.extend(self.extract_records(parent, fields))
        return records

    def extract_records(self, context: Tag, fields: list[FieldCommand]) -> list[Record]:
        """Resolve every field inside one context and zip the values by index."""
        collected: dict[str, list[Any]] = {}

        for field in fields:
            if not field.selector:
                continue

            nodes = self.engine.resolve(field.selector, context)
            if not nodes:
                continue

            values = [value for value in (self.extractor.extract(node, field) for node in nodes) if value is not None]
            if values:
                # A later field with the same name replaces the earlier one
                collected[field.name] = values

        if not collected:
            return []

        longest = max(len(values) for values in collected.values())
        records: list[Record] = []
        for index in range(longest):
            record = {name: values[index] for name, values in collected.items() if index < len(values)}
            if record:
                records.append(record)
        return records
