"""
TAP Grammar - Builds a result document from raw TAP output

Lines are tokenized by tap.py; this module adds the structure tap.py does
not know about:
- indented subtest blocks and the summary line that closes them
- YAML diagnostic blocks attached to a test line
- `# Subtest:` headers naming the next block

Usage:
    document = parse(output)
"""

import re
import logging
from typing import List, Optional, Tuple

from tap.parser import Parser

from ..errors import ProtocolParseError
from ..models import (
    Annotation,
    AnnotationKind,
    Group,
    LeafOutcome,
    Other,
    ResultNode,
)

logger = logging.getLogger(__name__)

SUBTEST_HEADER = re.compile(r"^#\s*Subtest:?\s*(?P<name>.*)$", re.IGNORECASE)
YAML_START = "---"
YAML_END = "..."

# Structure lines: consumed by the grammar, never emitted as statements
STRUCTURE_CATEGORIES = ("plan", "version")


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip(" "))


class TapGrammar:
    """
    Recursive-descent reader over the lines of a TAP stream.

    Each indentation level is one block. A block nested deeper than the
    current one is a subtest and must be followed by a test line at the
    current level, which becomes the group's summary.
    """

    def __init__(self):
        self._tokenizer = Parser()
        self._lines: List[str] = []
        self._pos = 0

    def parse(self, raw_text: str) -> List[ResultNode]:
        """
        Parse TAP text into a list of ResultNode.

        Raises:
            ProtocolParseError: malformed nesting, unterminated YAML block or
                unsupported TAP version
        """
        self._lines = raw_text.expandtabs(4).splitlines()
        self._pos = 0
        nodes, _ = self._parse_block(0)
        logger.debug("Parsed %d top-level statements", len(nodes))
        return nodes

    # ==================== BLOCKS ====================

    def _next_line(self) -> Optional[int]:
        """Skip blank lines and return the index of the next one, if any"""
        while self._pos < len(self._lines) and not self._lines[self._pos].strip():
            self._pos += 1
        return self._pos if self._pos < len(self._lines) else None

    def _parse_block(self, indent: int) -> Tuple[List[ResultNode], Optional[str]]:
        """
        Read statements at `indent`; returns them and the block's own name.

        A `# Subtest:` header names the next deeper block. When it is the
        first line of a block and no deeper block follows, it names the block
        it sits in.
        """
        nodes: List[ResultNode] = []
        block_name = None
        pending_name = None
        opening_header = False
        first = True

        while True:
            idx = self._next_line()
            if idx is None:
                break
            line = self._lines[idx]
            depth = _indent(line)
            if depth < indent:
                break

            if depth > indent:
                children, inner_name = self._parse_block(depth)
                summary = self._summary(indent, start=idx)
                nodes.append(Group(
                    children=children,
                    summary=summary,
                    name=pending_name or inner_name,
                ))
                if opening_header:
                    block_name = None
                    opening_header = False
                pending_name = None
                first = False
                continue

            self._pos = idx + 1
            text = line[indent:]

            header = SUBTEST_HEADER.match(text)
            if header:
                pending_name = header.group("name").strip() or None
                if first and indent > 0:
                    block_name = pending_name
                    opening_header = True
                first = False
                continue
            first = False
            pending_name = None
            opening_header = False

            token = self._tokenize(text, idx)
            if token.category == "test":
                nodes.append(self._leaf(token, indent))
            elif token.category in STRUCTURE_CATEGORIES:
                continue
            else:
                if token.category == "bail":
                    logger.warning("Test stream bailed out: %s", text)
                nodes.append(Other(kind=token.category, text=text))

        return nodes, block_name

    def _summary(self, indent: int, start: int) -> LeafOutcome:
        """Read the test line closing a subtest that began at `start`"""
        idx = self._next_line()
        if idx is None or _indent(self._lines[idx]) != indent:
            raise ProtocolParseError("subtest is not closed by a test line", line=start + 1)

        text = self._lines[idx][indent:]
        token = self._tokenize(text, idx)
        if token.category != "test":
            raise ProtocolParseError("subtest is not closed by a test line", line=idx + 1)

        self._pos = idx + 1
        return self._leaf(token, indent)

    # ==================== LINES ====================

    def _tokenize(self, text: str, idx: int):
        try:
            return self._tokenizer.parse_line(text)
        except ValueError as e:
            # tap.py rejects explicit versions below 13
            raise ProtocolParseError(str(e), line=idx + 1) from e

    def _leaf(self, token, indent: int) -> LeafOutcome:
        description = re.sub(r"^-\s*", "", token.description or "").strip()
        return LeafOutcome(
            passed=token.ok,
            explicit_number=token.number,
            description=description or None,
            annotation=self._annotation(token.directive),
            diagnostic_text=self._yaml_block(indent),
        )

    @staticmethod
    def _annotation(directive) -> Optional[Annotation]:
        if directive is None:
            return None
        reason = (directive.reason or "").strip() or None
        if directive.skip:
            return Annotation(AnnotationKind.SKIP, reason)
        if directive.todo:
            return Annotation(AnnotationKind.TODO, reason)
        return None

    def _yaml_block(self, indent: int) -> str:
        """Consume the YAML block following a test line, if there is one"""
        idx = self._next_line()
        if idx is None:
            return ""
        opener = self._lines[idx]
        yaml_indent = _indent(opener)
        if yaml_indent <= indent or opener.strip() != YAML_START:
            return ""

        body = []
        pos = idx + 1
        while pos < len(self._lines):
            line = self._lines[pos]
            if line.strip() == YAML_END:
                self._pos = pos + 1
                return "\n".join(body)
            if line[:yaml_indent].strip():
                body.append(line.lstrip(" "))
            else:
                body.append(line[yaml_indent:])
            pos += 1

        raise ProtocolParseError("unterminated YAML block", line=idx + 1)


def parse(raw_text: str) -> List[ResultNode]:
    """Parse raw TAP output into a result document"""
    return TapGrammar().parse(raw_text)
