"""Tests for catalog file construction."""

import json

import numpy as np
import pytest

from clip_search.config import EMBEDDING_DIM
from clip_search.engine import SearchEngine
from clip_search.index_builder import build_index, encode_embeddings, write_store
from clip_search.store import EmbeddingStore


class TestEncodeEmbeddings:
    """Tests for half-precision encoding."""

    def test_size(self):
        blob = encode_embeddings(np.ones((4, EMBEDDING_DIM)))
        assert len(blob) == 4 * EMBEDDING_DIM * 2

    def test_rows_normalized(self):
        rng = np.random.RandomState(3)
        blob = encode_embeddings(rng.normal(size=(5, EMBEDDING_DIM)) * 10)
        decoded = np.frombuffer(blob, dtype="<f2").astype(np.float32).reshape(5, -1)
        norms = np.linalg.norm(decoded, axis=1)
        assert np.all(np.abs(norms - 1.0) < 1e-2)

    def test_wrong_width_raises(self):
        with pytest.raises(ValueError):
            encode_embeddings(np.ones((2, 128)))


class TestWriteStore:
    """Tests for writing and reloading catalog files."""

    def test_round_trip(self, tmp_path, abc_metadata, abc_vectors):
        paths = write_store(abc_metadata, abc_vectors, str(tmp_path))
        store = EmbeddingStore.from_files(paths["meta_path"], paths["embeddings_path"])
        assert [list(r) for r in store.records] == abc_metadata
        np.testing.assert_allclose(store.matrix, abc_vectors, atol=1e-3)

    def test_metadata_is_tuple_array(self, tmp_path, abc_metadata, abc_vectors):
        paths = write_store(abc_metadata, abc_vectors, str(tmp_path))
        with open(paths["meta_path"], encoding="utf-8") as f:
            assert json.load(f)[0] == [1, "item-a", "Item A", "https://cdn.example.com/a.jpg"]

    def test_length_mismatch_raises(self, tmp_path, abc_metadata, abc_vectors):
        with pytest.raises(ValueError, match="records"):
            write_store(abc_metadata, abc_vectors[:2], str(tmp_path))


class TestBuildIndex:
    """Tests for embedding a directory of catalog images."""

    @pytest.fixture
    def image_dir(self, tmp_path, red_square_png, blue_circle_png):
        images = tmp_path / "images"
        images.mkdir()
        (images / "red.png").write_bytes(red_square_png)
        (images / "blue.png").write_bytes(blue_circle_png)
        (images / "broken.png").write_bytes(b"not an image")
        return str(images)

    @pytest.fixture
    def entries(self):
        return [
            {"id": 10, "handle": "red", "title": "Red", "image_url": "u/red", "filename": "red.png"},
            {"id": 11, "handle": "blue", "title": "Blue", "image_url": "u/blue", "filename": "blue.png"},
            {"id": 12, "handle": "gone", "title": "Gone", "image_url": "u/gone", "filename": "gone.png"},
            {"id": 13, "handle": "broken", "title": "Broken", "image_url": "u/b", "filename": "broken.png"},
        ]

    def test_skips_missing_and_broken(self, tmp_path, image_dir, entries, mean_color_adapter):
        summary = build_index(entries, image_dir, str(tmp_path / "out"), mean_color_adapter)
        assert summary["success"] is True
        assert summary["processed"] == 2
        assert summary["errors"] == 2

    def test_built_catalog_is_searchable(self, tmp_path, image_dir, entries,
                                         mean_color_adapter, red_square_png):
        summary = build_index(entries, image_dir, str(tmp_path / "out"), mean_color_adapter)
        store = EmbeddingStore.from_files(summary["meta_path"], summary["embeddings_path"])
        results = SearchEngine(store, mean_color_adapter).search(red_square_png, top_k=2)
        assert results[0]["handle"] == "red"
        assert results[0]["score"] >= 99.9

    def test_nothing_processed(self, tmp_path, mean_color_adapter):
        summary = build_index([], str(tmp_path), str(tmp_path / "out"), mean_color_adapter)
        assert summary["success"] is False
