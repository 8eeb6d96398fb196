# services/context_builder.py
"""Turn backend results into a bounded, tagged context block for synthesis"""
import json
import logging
from typing import List, Dict, Any, Tuple

from config import settings
from core.domain import BackendResult, ContextEntry, SemanticHit, SourceReference, SrdRecord
from core.enums import SourceOrigin, StructuredEndpoint
from utils.common import truncate
from utils.source_mapper import chunk_source_url, chunk_title

logger = logging.getLogger(settings.LOGGER_NAME)

# Exact matches ground better than fuzzy ones
ORIGIN_PRIORITY = {
    SourceOrigin.STRUCTURED: 0,
    SourceOrigin.REFERENCE: 1,
    SourceOrigin.SEMANTIC: 2,
}

CONTEXT_SEPARATOR = "\n\n---\n\n"


# ============= Row formatting =============

def _room_monsters(raw: Any) -> str:
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return raw
    if not isinstance(raw, list):
        return ""
    parts = []
    for m in raw:
        if isinstance(m, dict) and m.get("name"):
            count = m.get("count")
            parts.append(f"{m['name']} x{count}" if count else m["name"])
        elif isinstance(m, str):
            parts.append(m)
    return ", ".join(parts)


def _field_lines(row: Dict[str, Any], fields: List[Tuple[str, str]]) -> List[str]:
    return [f"**{label}:** {row[key]}" for key, label in fields if row.get(key) not in (None, "")]


def format_row(endpoint: StructuredEndpoint, row: Dict[str, Any]) -> str:
    if endpoint == StructuredEndpoint.ROOMS:
        header = f"**Room {row.get('room_id', '?')}**"
        if row.get("name"):
            header += f": {row['name']}"
        lines = [header, f"*Region {row.get('region', '?')}*"]
        lines += _field_lines(row, [
            ("description", "Description"), ("dimensions", "Dimensions"), ("features", "Features"),
        ])
        monsters = _room_monsters(row.get("monsters"))
        if monsters:
            lines.append(f"**Monsters:** {monsters}")
        lines += _field_lines(row, [("treasure", "Treasure"), ("traps", "Traps"), ("notes", "Notes")])
        return "\n".join(lines)

    if endpoint == StructuredEndpoint.SPELLS:
        level = row.get("level")
        label = "Cantrip" if level == 0 else (f"Level {level}" if level is not None else "Spell")
        school = row.get("school")
        lines = [f"**{row.get('name', '?')}**", f"*{label} {school}*" if school else f"*{label}*"]
        lines += _field_lines(row, [
            ("casting_time", "Casting Time"), ("range", "Range"), ("components", "Components"),
            ("duration", "Duration"), ("classes", "Classes"),
        ])
        if row.get("description"):
            lines += ["", row["description"]]
        if row.get("higher_levels"):
            lines += ["", f"**At Higher Levels:** {row['higher_levels']}"]
        return "\n".join(lines)

    if endpoint == StructuredEndpoint.MONSTERS:
        lines = [
            f"**{row.get('name', '?')}**",
            f"*{row.get('size', '')} {row.get('type', '')}, {row.get('alignment', '')}*",
        ]
        lines += _field_lines(row, [
            ("cr", "Challenge"), ("ac", "Armor Class"), ("hp", "Hit Points"),
            ("speed", "Speed"), ("abilities", "Abilities"), ("description", "Description"),
        ])
        return "\n".join(lines)

    lines = [f"**{row.get('name', '?')}**"]
    lines += [f"**{k.replace('_', ' ').title()}:** {v}" for k, v in row.items()
              if k not in ("name", "id", "source") and v not in (None, "")]
    return "\n".join(lines)


# ============= Entry construction =============

def row_entry(endpoint: StructuredEndpoint, row: Dict[str, Any], url: str) -> ContextEntry:
    key = row.get("room_id") if endpoint == StructuredEndpoint.ROOMS else row.get("name")
    key = str(key or row.get("id") or "?")
    title = f"Room {key}" if endpoint == StructuredEndpoint.ROOMS else key
    return ContextEntry(
        tag=f"[{endpoint.value}:{key}]",
        title=title,
        text=format_row(endpoint, row),
        origin=SourceOrigin.STRUCTURED,
        reference=url,
    )


def hit_entry(hit: SemanticHit) -> ContextEntry:
    return ContextEntry(
        tag=f"[rag:{hit.id}]",
        title=chunk_title(hit.id, hit.metadata),
        text=hit.text.strip(),
        origin=SourceOrigin.SEMANTIC,
        reference=chunk_source_url(hit.id, hit.metadata),
        score=hit.score,
    )


def srd_entry(record: SrdRecord) -> ContextEntry:
    return ContextEntry(
        tag=f"[srd:{record.kind}:{record.index}]",
        title=f"{record.name} (5e SRD)",
        text=record.text,
        origin=SourceOrigin.REFERENCE,
        reference=record.url,
    )


# ============= Assembly =============

def build_context(results: List[BackendResult],
                  max_chars: int = settings.MAX_CONTEXT_CHARS,
                  max_entry_chars: int = settings.MAX_ENTRY_CHARS) -> Tuple[str, List[ContextEntry]]:
    """
    Merge successful backend results into one context block.

    Structured rows come first, then SRD reference records, then semantic
    chunks by descending score. Duplicate tags are dropped and the block never
    exceeds `max_chars`; entries that do not fit are left out.
    """
    candidates = [e for r in results if r.ok for e in r.entries]
    candidates.sort(key=lambda e: (ORIGIN_PRIORITY[e.origin], -e.score))

    seen = set()
    kept: List[ContextEntry] = []
    blocks: List[str] = []
    used = 0

    for entry in candidates:
        if entry.tag in seen:
            continue
        seen.add(entry.tag)

        block = f"{entry.tag} {entry.title}\n{truncate(entry.text, max_entry_chars)}"
        cost = len(block) + (len(CONTEXT_SEPARATOR) if blocks else 0)
        if used + cost > max_chars:
            remaining = max_chars - used - (len(CONTEXT_SEPARATOR) if blocks else 0)
            if kept or remaining < len(entry.tag) + 40:
                logger.debug(f"Context budget reached, dropping {entry.tag}")
                continue
            block = truncate(block, remaining)
            cost = len(block)

        blocks.append(block)
        kept.append(entry)
        used += cost

    return CONTEXT_SEPARATOR.join(blocks), kept


def entry_source(entry: ContextEntry) -> SourceReference:
    return SourceReference(title=entry.title, url=entry.reference, origin=entry.origin, tag=entry.tag)


def cited_sources(answer: str, entries: List[ContextEntry]) -> List[SourceReference]:
    """Sources whose tags the answer cites; every entry when none are cited."""
    cited = [e for e in entries if e.tag in answer]
    return [entry_source(e) for e in (cited or entries)]
