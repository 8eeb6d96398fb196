from core.domain import BackendResult, SemanticHit, SrdRecord
from core.enums import BackendStatus, SourceOrigin, StructuredEndpoint
from services.context_builder import (
    CONTEXT_SEPARATOR,
    build_context,
    cited_sources,
    format_row,
    hit_entry,
    row_entry,
    srd_entry,
)

ROOM_ROW = {
    "room_id": "A12",
    "region": "A",
    "name": "Guard Post",
    "description": "A cramped stone chamber.",
    "monsters": '[{"name": "Kobold", "count": 3}, {"name": "Kobold Chief"}]',
}


def _ok(backend, entries):
    return BackendResult(backend, BackendStatus.SUCCESS, entries=entries)


def _rag(chunk_id, score, text="Some lore."):
    return hit_entry(SemanticHit(id=chunk_id, text=text, score=score, metadata={}))


def _fireball():
    return srd_entry(SrdRecord(
        kind="spell", index="fireball", name="Fireball", text="**Fireball**",
        url="https://www.dnd5eapi.co/api/2014/spells/fireball",
    ))


def test_format_room_row_lists_monsters():
    text = format_row(StructuredEndpoint.ROOMS, ROOM_ROW)

    assert text.startswith("**Room A12**: Guard Post")
    assert "*Region A*" in text
    assert "**Monsters:** Kobold x3, Kobold Chief" in text


def test_format_spell_row_labels_level():
    cantrip = format_row(StructuredEndpoint.SPELLS, {"name": "Light", "level": 0, "school": "Evocation"})
    unknown = format_row(StructuredEndpoint.SPELLS, {"name": "Mystery"})

    assert "*Cantrip Evocation*" in cantrip
    assert "*Spell*" in unknown


def test_format_generic_row_skips_ids_and_blanks():
    text = format_row(StructuredEndpoint.EQUIPMENT, {"id": 7, "name": "Rope", "cost": "1 gp", "weight": ""})

    assert text == "**Rope**\n**Cost:** 1 gp"


def test_entry_tags():
    room = row_entry(StructuredEndpoint.ROOMS, ROOM_ROW, "http://sqlite/api/rooms?room_id=A12")
    spell = row_entry(StructuredEndpoint.SPELLS, {"name": "Bless"}, "http://sqlite/api/spells?name=Bless")

    assert room.tag == "[rooms:A12]"
    assert room.title == "Room A12"
    assert spell.tag == "[spells:Bless]"
    assert _rag("chunk-7", 0.4).tag == "[rag:chunk-7]"
    assert _fireball().tag == "[srd:spell:fireball]"
    assert _fireball().title == "Fireball (5e SRD)"


def test_structured_entries_come_first_then_reference_then_semantic_by_score():
    room = row_entry(StructuredEndpoint.ROOMS, ROOM_ROW, "u")
    results = [
        _ok("rag", [_rag("low", 0.2), _rag("high", 0.9)]),
        _ok("srd:spell", [_fireball()]),
        _ok("sqlite:rooms", [room]),
    ]

    context, entries = build_context(results)

    assert [e.tag for e in entries] == [
        "[rooms:A12]", "[srd:spell:fireball]", "[rag:high]", "[rag:low]",
    ]
    assert context.index("[rooms:A12]") < context.index("[rag:high]")
    assert context.count(CONTEXT_SEPARATOR) == 3


def test_failed_results_and_duplicate_tags_are_dropped():
    results = [
        _ok("rag", [_rag("c1", 0.5), _rag("c1", 0.4)]),
        BackendResult("sqlite:spells", BackendStatus.FAILURE, entries=[_rag("c9", 1.0)], error="boom"),
    ]

    _, entries = build_context(results)

    assert [e.tag for e in entries] == ["[rag:c1]"]


def test_context_never_exceeds_budget():
    results = [_ok("rag", [_rag(f"c{i}", 1.0 - i / 10, text="x" * 400) for i in range(6)])]

    context, entries = build_context(results, max_chars=1000, max_entry_chars=2500)

    assert len(context) <= 1000
    assert 0 < len(entries) < 6


def test_oversized_first_entry_is_truncated_to_fit():
    results = [_ok("rag", [_rag("big", 0.9, text="y" * 5000)])]

    context, entries = build_context(results, max_chars=300, max_entry_chars=10000)

    assert len(entries) == 1
    assert len(context) <= 300
    assert context.startswith("[rag:big]")
    assert context.endswith("...")


def test_no_successful_results_gives_empty_context():
    context, entries = build_context([BackendResult("rag", BackendStatus.UNREACHABLE)])

    assert context == ""
    assert entries == []


def test_cited_sources_follow_tags_in_answer():
    room = row_entry(StructuredEndpoint.ROOMS, ROOM_ROW, "http://sqlite/api/rooms?room_id=A12")
    entries = [room, _rag("c1", 0.5)]

    cited = cited_sources("Room A12 is a guard post [rooms:A12].", entries)
    uncited = cited_sources("No tags here.", entries)

    assert [s.tag for s in cited] == ["[rooms:A12]"]
    assert cited[0].origin == SourceOrigin.STRUCTURED
    assert cited[0].url == "http://sqlite/api/rooms?room_id=A12"
    assert len(uncited) == 2
