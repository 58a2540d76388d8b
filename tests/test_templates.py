"""Template store caching, scaling and lookup."""

import threading

import cv2
import numpy as np
import pytest

from autopull.errors import TemplateNotFound
from autopull.templates import TemplateStore


class TestLookup:
    def test_available_filters_by_extension(self, template_dir):
        (template_dir / "notes.txt").write_text("not a template")
        cv2.imwrite(str(template_dir / "photo.jpg"), np.zeros((4, 4, 3), dtype=np.uint8))
        cv2.imwrite(str(template_dir / "next.png"), np.zeros((4, 4, 3), dtype=np.uint8))
        assert TemplateStore(str(template_dir)).available() == ["marker", "next"]

    def test_missing_lists_absent_names(self, store):
        assert store.missing(["marker", "draw", "confirm"]) == ["draw", "confirm"]

    def test_unknown_name_raises(self, store):
        with pytest.raises(TemplateNotFound):
            store.get("draw")

    def test_template_not_found_is_file_not_found(self, store):
        with pytest.raises(FileNotFoundError):
            store.get("draw")

    def test_missing_directory_has_nothing(self, tmp_path):
        assert TemplateStore(str(tmp_path / "nope")).available() == []


class TestScaling:
    def test_native_size_kept_scaled_size_derived(self, template_dir):
        t = TemplateStore(str(template_dir), scale=0.5).get("marker")
        assert t.native_size == (20, 20)
        assert t.size == (10, 10)

    def test_upscale(self, template_dir):
        assert TemplateStore(str(template_dir), scale=1.5).get("marker").size == (30, 30)

    def test_unit_scale_keeps_pixels(self, store, marker):
        assert np.array_equal(store.get("marker").image, marker)

    def test_interpolation_fixed_per_store(self, template_dir):
        assert TemplateStore(str(template_dir), scale=0.5).interpolation == cv2.INTER_AREA
        assert TemplateStore(str(template_dir), scale=2.0).interpolation == cv2.INTER_LINEAR

    def test_non_positive_scale_rejected(self, template_dir):
        with pytest.raises(ValueError):
            TemplateStore(str(template_dir), scale=0)


class TestCache:
    def test_second_get_returns_same_object(self, store):
        assert store.get("marker") is store.get("marker")

    def test_preload_warms_cache(self, store):
        assert "marker" not in store
        store.preload(["marker"]).join(timeout=5)
        assert "marker" in store

    def test_preload_skips_missing_without_raising(self, store):
        logged = []
        store._log = lambda m, l: logged.append(l)
        store.preload(["draw", "marker"]).join(timeout=5)
        assert "marker" in store
        assert "WARN" in logged

    def test_concurrent_first_access_shares_one_template(self, store):
        barrier = threading.Barrier(8)
        seen = []

        def grab():
            barrier.wait()
            seen.append(store.get("marker"))

        threads = [threading.Thread(target=grab) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)
        assert len(seen) == 8
        assert all(t is seen[0] for t in seen)
        assert store.get("marker") is seen[0]
