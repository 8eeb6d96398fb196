from config import settings
from utils.source_mapper import chunk_source_url, chunk_title, github_blob_url


def test_explicit_url_wins():
    meta = {"source_url": "https://example.test/a12", "file_path": "Region A/A12.md"}

    assert chunk_source_url("c1", meta) == "https://example.test/a12"


def test_content_path_maps_to_github_blob(monkeypatch):
    monkeypatch.setattr(settings, "GITHUB_OWNER", "owner")
    monkeypatch.setattr(settings, "GITHUB_REPO", "dungeon")
    monkeypatch.setattr(settings, "GITHUB_BRANCH", "main")

    assert chunk_source_url("c1", {"file_path": "./Region A/A12.md"}) == \
        "https://github.com/owner/dungeon/blob/main/Region%20A/A12.md"
    assert github_blob_url("Region A\\A12.md") == \
        "https://github.com/owner/dungeon/blob/main/Region%20A/A12.md"


def test_chunk_without_location_uses_stable_id():
    assert chunk_source_url("chunk-9", {}) == "rag:chunk-9"


def test_chunk_title_preference():
    assert chunk_title("c1", {"title": " Kobold Warrens ", "file_path": "x/y.md"}) == "Kobold Warrens"
    assert chunk_title("c1", {"file_path": "Region A/A12.md"}) == "A12"
    assert chunk_title("c1", {"source": "https://example.test/a"}) == "Chunk c1"


def test_dot_prefixed_paths_keep_their_names(monkeypatch):
    monkeypatch.setattr(settings, "GITHUB_OWNER", "owner")
    monkeypatch.setattr(settings, "GITHUB_REPO", "dungeon")
    monkeypatch.setattr(settings, "GITHUB_BRANCH", "main")

    assert github_blob_url(".github/docs/rules.md") == \
        "https://github.com/owner/dungeon/blob/main/.github/docs/rules.md"
    assert github_blob_url("././/Region B/B3.md") == \
        "https://github.com/owner/dungeon/blob/main/Region%20B/B3.md"
