"""Word export for proposal text.

Proposal text (template or AI draft) uses a small markdown subset:
``#``/``##`` headings, ``-`` bullets, ``1.`` numbered steps, pipe tables and
``**bold**`` spans. It is parsed into blocks first so the AI draft and the
template go through the same renderer.
"""

from __future__ import annotations

import io
import re
from dataclasses import dataclass, field
from datetime import date

from docx import Document
from docx.shared import Pt

from .models import OpportunityRecord

_BOLD_RE = re.compile(r"\*\*(.+?)\*\*")
_NUMBERED_RE = re.compile(r"^\d+[.)]\s+")
_TABLE_RULE_RE = re.compile(r"^\|?\s*:?-{3,}")
_UNSAFE_RE = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(slots=True)
class Block:
    kind: str
    text: str = ""
    rows: list[list[str]] = field(default_factory=list)


def parse_blocks(text: str) -> list[Block]:
    blocks: list[Block] = []
    table: Block | None = None

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if line.startswith("|"):
            cells = [cell.strip() for cell in line.strip("|").split("|")]
            if _TABLE_RULE_RE.match(cells[0] if cells else ""):
                continue
            if table is None:
                table = Block(kind="table")
                blocks.append(table)
            table.rows.append(cells)
            continue
        table = None

        if not line:
            continue
        if line.startswith("### ") or line.startswith("## "):
            blocks.append(Block(kind="heading2", text=line.lstrip("#").strip()))
        elif line.startswith("# "):
            blocks.append(Block(kind="heading1", text=line[2:].strip()))
        elif line[:2] in ("- ", "* ", "• "):
            blocks.append(Block(kind="bullet", text=line[2:].strip()))
        elif _NUMBERED_RE.match(line):
            blocks.append(Block(kind="numbered", text=_NUMBERED_RE.sub("", line, count=1)))
        else:
            blocks.append(Block(kind="paragraph", text=line))

    return blocks


def render_docx(blocks: list[Block], title: str | None = None, footer: str | None = None) -> bytes:
    doc = Document()
    normal = doc.styles["Normal"]
    normal.font.name = "Calibri"
    normal.font.size = Pt(11)
    if title:
        doc.core_properties.title = title
    if footer:
        doc.sections[0].footer.paragraphs[0].text = footer

    title_used = False
    for block in blocks:
        if block.kind == "heading1":
            # The first top-level heading is the document title.
            level = 1 if title_used else 0
            title_used = True
            doc.add_heading(_plain(block.text), level=level)
        elif block.kind == "heading2":
            doc.add_heading(_plain(block.text), level=2)
        elif block.kind == "bullet":
            _add_runs(doc.add_paragraph(style="List Bullet"), block.text)
        elif block.kind == "numbered":
            _add_runs(doc.add_paragraph(style="List Number"), block.text)
        elif block.kind == "table":
            _add_table(doc, block.rows)
        else:
            _add_runs(doc.add_paragraph(), block.text)

    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def proposal_docx(text: str, opportunity: OpportunityRecord, company_name: str) -> bytes:
    return render_docx(
        parse_blocks(text),
        title=f"Technical Proposal for {opportunity.title}",
        footer=f"{company_name} | {opportunity.solicitation_number or opportunity.notice_id}".rstrip(
            " |"
        ),
    )


def proposal_filename(opportunity: OpportunityRecord, today: date) -> str:
    reference = opportunity.solicitation_number or opportunity.notice_id or "opportunity"
    return f"Proposal_{_UNSAFE_RE.sub('_', reference)}_{today.isoformat()}.docx"


def _add_table(doc, rows: list[list[str]]) -> None:
    width = max(len(row) for row in rows)
    table = doc.add_table(rows=len(rows), cols=width)
    table.style = "Table Grid"
    for row_index, row in enumerate(rows):
        for col_index in range(width):
            value = row[col_index] if col_index < len(row) else ""
            paragraph = table.cell(row_index, col_index).paragraphs[0]
            _add_runs(paragraph, value, bold=row_index == 0)


def _add_runs(paragraph, text: str, bold: bool = False) -> None:
    # re.split with one group alternates plain and bold segments
    for index, segment in enumerate(_BOLD_RE.split(text)):
        if not segment:
            continue
        run = paragraph.add_run(segment)
        run.bold = bold or index % 2 == 1


def _plain(text: str) -> str:
    return _BOLD_RE.sub(r"\1", text)
