"""Markdown → блоки документа для просмотрщика PRD и выжимок.

Разбор построчный, слева направо, в виде явного конечного автомата с
режимами PARAGRAPH / LIST / TABLE / BLOCKQUOTE. Приоритет распознавания
строки:

1. строка таблицы (после trim начинается с `|`);
2. заголовок `# ` / `## ` / `### `;
3. цитата `> `;
4. пункт маркированного списка `- ` / `* ` (копится до первой не‑списочной строки);
5. пункт нумерованного списка `N. ` (выводится сразу, номер отбрасывается);
6. пустая строка (сбрасывает накопленный список/таблицу/цитату, выводит отступ);
7. обычный абзац.

Инлайн‑разметка (`**bold**`, `*italic*`, `` `code` ``) разбирается одним
регулярным выражением слева направо; вложенность не поддерживается.
"""
from __future__ import annotations

import enum
import html
import re
from dataclasses import asdict, dataclass, field
from typing import Any, ClassVar, Dict, List, Union

_ORDERED = re.compile(r"^\d+\.\s")
_INLINE = re.compile(r"\*\*(.+?)\*\*|\*(.+?)\*|`(.+?)`")
_SEPARATOR_CELL = re.compile(r"^:?-+:?$")


@dataclass
class Span:
    """Фрагмент строки: text | bold | italic | code."""
    kind: str
    text: str


@dataclass
class Heading:
    kind: ClassVar[str] = "heading"
    level: int
    text: str


@dataclass
class Paragraph:
    kind: ClassVar[str] = "paragraph"
    spans: List[Span]


@dataclass
class BulletList:
    kind: ClassVar[str] = "list"
    items: List[List[Span]]


@dataclass
class OrderedItem:
    kind: ClassVar[str] = "ordered_item"
    spans: List[Span]


@dataclass
class Table:
    kind: ClassVar[str] = "table"
    header: List[str]
    rows: List[List[str]] = field(default_factory=list)


@dataclass
class Blockquote:
    kind: ClassVar[str] = "blockquote"
    lines: List[str]


@dataclass
class Spacer:
    kind: ClassVar[str] = "spacer"


Block = Union[Heading, Paragraph, BulletList, OrderedItem, Table, Blockquote, Spacer]


def block_to_dict(block: Block) -> Dict[str, Any]:
    return {"kind": block.kind, **asdict(block)}


def parse_inline(text: str) -> List[Span]:
    """Разбить строку на фрагменты с инлайн‑форматированием."""
    spans: List[Span] = []
    pos = 0
    for m in _INLINE.finditer(text):
        if m.start() > pos:
            spans.append(Span("text", text[pos:m.start()]))
        if m.group(1) is not None:
            spans.append(Span("bold", m.group(1)))
        elif m.group(2) is not None:
            spans.append(Span("italic", m.group(2)))
        else:
            spans.append(Span("code", m.group(3)))
        pos = m.end()
    if pos < len(text):
        spans.append(Span("text", text[pos:]))
    return spans


def split_table_row(line: str) -> List[str]:
    stripped = line.strip()
    cells = stripped.split("|")[1:]
    if stripped.endswith("|") and len(stripped) > 1:
        cells = cells[:-1]
    return [c.strip() for c in cells]


def is_separator_row(cells: List[str]) -> bool:
    return bool(cells) and all(_SEPARATOR_CELL.match(c.replace(" ", "")) for c in cells)


class Mode(enum.Enum):
    PARAGRAPH = "paragraph"
    LIST = "list"
    TABLE = "table"
    BLOCKQUOTE = "blockquote"


class LineKind(enum.Enum):
    TABLE_ROW = "table_row"
    HEADING = "heading"
    QUOTE = "quote"
    BULLET = "bullet"
    ORDERED = "ordered"
    BLANK = "blank"
    TEXT = "text"


def classify_line(line: str) -> LineKind:
    stripped = line.strip()
    if stripped.startswith("|"):
        return LineKind.TABLE_ROW
    if line.startswith(("# ", "## ", "### ")):
        return LineKind.HEADING
    if line.startswith("> "):
        return LineKind.QUOTE
    if stripped.startswith(("* ", "- ")):
        return LineKind.BULLET
    if _ORDERED.match(stripped):
        return LineKind.ORDERED
    if stripped == "":
        return LineKind.BLANK
    return LineKind.TEXT


# line kinds that accumulate into a multi-line block, and the mode they open
_BUFFERED = {
    LineKind.TABLE_ROW: Mode.TABLE,
    LineKind.BULLET: Mode.LIST,
    LineKind.QUOTE: Mode.BLOCKQUOTE,
}


class MarkdownParser:
    """Конечный автомат разбора markdown.

    В каждый момент автомат находится в одном режиме. Строка, открывающая
    другой режим (или любая одиночная строка), сначала сбрасывает
    накопленный буфер текущего режима в готовый блок.
    """

    def __init__(self) -> None:
        self.mode = Mode.PARAGRAPH
        self.blocks: List[Block] = []
        self._buffer: List[Any] = []

    def feed(self, line: str) -> None:
        kind = classify_line(line)
        target = _BUFFERED.get(kind)
        if target is not None:
            if self.mode is not target:
                self.flush()
                self.mode = target
            self._buffer.append(self._buffered_item(kind, line))
            return

        self.flush()
        if kind is LineKind.HEADING:
            level = len(line) - len(line.lstrip("#"))
            self.blocks.append(Heading(level=level, text=line[level + 1:]))
        elif kind is LineKind.ORDERED:
            self.blocks.append(OrderedItem(spans=parse_inline(_ORDERED.sub("", line.strip(), count=1))))
        elif kind is LineKind.BLANK:
            self.blocks.append(Spacer())
        else:
            self.blocks.append(Paragraph(spans=parse_inline(line)))

    @staticmethod
    def _buffered_item(kind: LineKind, line: str) -> Any:
        if kind is LineKind.TABLE_ROW:
            return split_table_row(line)
        if kind is LineKind.BULLET:
            return parse_inline(line.strip()[2:])
        return line[2:]

    def flush(self) -> None:
        """Сбросить буфер текущего режима в блок и вернуться в PARAGRAPH."""
        if self._buffer:
            if self.mode is Mode.LIST:
                self.blocks.append(BulletList(items=self._buffer))
            elif self.mode is Mode.TABLE:
                self.blocks.append(self._build_table(self._buffer))
            elif self.mode is Mode.BLOCKQUOTE:
                self.blocks.append(Blockquote(lines=self._buffer))
        self._buffer = []
        self.mode = Mode.PARAGRAPH

    @staticmethod
    def _build_table(rows: List[List[str]]) -> Table:
        header, body = rows[0], rows[1:]
        if body and is_separator_row(body[0]):
            body = body[1:]
        width = len(header)
        normalized = [(r + [""] * width)[:width] for r in body]
        return Table(header=header, rows=normalized)

    def finish(self) -> List[Block]:
        self.flush()
        return self.blocks


def parse_markdown(text: str) -> List[Block]:
    """Разобрать markdown‑строку в последовательность блоков."""
    parser = MarkdownParser()
    for line in (text or "").replace("\r\n", "\n").split("\n"):
        parser.feed(line)
    return parser.finish()


def _spans_html(spans: List[Span]) -> str:
    out = []
    for s in spans:
        text = html.escape(s.text)
        if s.kind == "bold":
            out.append(f"<strong>{text}</strong>")
        elif s.kind == "italic":
            out.append(f"<em>{text}</em>")
        elif s.kind == "code":
            out.append(f"<code>{text}</code>")
        else:
            out.append(text)
    return "".join(out)


def render_html(blocks: List[Block]) -> str:
    """Отрисовать блоки в HTML (весь текст экранируется)."""
    parts: List[str] = []
    for b in blocks:
        if isinstance(b, Heading):
            parts.append(f"<h{b.level}>{html.escape(b.text)}</h{b.level}>")
        elif isinstance(b, Paragraph):
            parts.append(f"<p>{_spans_html(b.spans)}</p>")
        elif isinstance(b, OrderedItem):
            parts.append(f'<p class="ordered">{_spans_html(b.spans)}</p>')
        elif isinstance(b, BulletList):
            items = "".join(f"<li>{_spans_html(i)}</li>" for i in b.items)
            parts.append(f"<ul>{items}</ul>")
        elif isinstance(b, Table):
            head = "".join(f"<th>{html.escape(c)}</th>" for c in b.header)
            body = "".join(
                "<tr>" + "".join(f"<td>{html.escape(c)}</td>" for c in row) + "</tr>" for row in b.rows
            )
            parts.append(f"<table><thead><tr>{head}</tr></thead><tbody>{body}</tbody></table>")
        elif isinstance(b, Blockquote):
            parts.append("<blockquote>" + "<br>".join(html.escape(l) for l in b.lines) + "</blockquote>")
        elif isinstance(b, Spacer):
            parts.append('<div class="spacer"></div>')
    return "\n".join(parts)
