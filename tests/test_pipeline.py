"""
tests/test_pipeline.py — configuration, over-segmentation, pipeline and rendering.
Run: pytest tests/ -v
"""

from __future__ import annotations
import sys
from pathlib import Path
import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


def _two_colour(H=8, W=8):
    img = np.zeros((H, W, 3), dtype=np.uint8)
    img[:, : W // 2] = (0, 0, 255)
    img[:, W // 2:] = (255, 0, 0)
    ys, xs = np.mgrid[0:H, 0:W]
    labels = (ys // 4) * (W // 2) + xs // 2
    return img, labels.astype(np.int32)


def _noisy_halves(H=48, W=48, seed=0):
    rng = np.random.RandomState(seed)
    img = np.zeros((H, W, 3), dtype=np.int32)
    img[:, : W // 2] = (40, 60, 200)
    img[:, W // 2:] = (200, 160, 40)
    img += rng.randint(-5, 6, img.shape)
    return np.clip(img, 0, 255).astype(np.uint8)


# config

class TestConfig:

    def test_default_pipeline_file(self):
        from superpixel_merge.config import load_pipeline_config
        cfg = load_pipeline_config()
        assert [p.strategy for p in cfg.passes] == ["identical", "bfs_backproject", "tiny"]
        assert cfg.passes[1].options.preset == "HIGH_FIVE8"
        assert cfg.passes[1].options.use_edge_weights is False

    def test_configs_ship_inside_package(self):
        import superpixel_merge
        from superpixel_merge.config import CONFIG_DIR
        assert CONFIG_DIR.parent == Path(superpixel_merge.__file__).resolve().parent
        assert sorted(p.stem for p in CONFIG_DIR.glob("*.yaml")) == ["edges", "fill", "pipeline"]

    def test_dataclass_default_matches_file(self):
        from superpixel_merge.config import PipelineConfig, load_pipeline_config
        assert PipelineConfig() == load_pipeline_config("pipeline")

    @pytest.mark.parametrize("name", ["pipeline", "edges", "fill"])
    def test_shipped_configs_load(self, name):
        from superpixel_merge.config import load_pipeline_config
        from superpixel_merge.traversal import STRATEGIES
        import superpixel_merge.cleanup  # noqa: F401
        cfg = load_pipeline_config(name)
        assert cfg.passes
        assert all(p.strategy in STRATEGIES for p in cfg.passes)

    def test_yaml_path(self, tmp_path):
        from superpixel_merge.config import load_pipeline_config
        path = tmp_path / "run.yaml"
        path.write_text(
            "colorspace: lab\n"
            "passes:\n"
            "  - strategy: greedy_largest\n"
            "  - strategy: tiny\n"
            "    tiny_size: 20\n"
        )
        cfg = load_pipeline_config(path)
        assert cfg.colorspace == "lab"
        assert cfg.num_bins == 16
        assert cfg.passes[1].options.tiny_size == 20

    def test_unknown_option(self, tmp_path):
        from superpixel_merge.config import load_pipeline_config
        path = tmp_path / "bad.yaml"
        path.write_text("passes:\n  - strategy: tiny\n    tiny_sizee: 3\n")
        with pytest.raises(ValueError, match="tiny_sizee"):
            load_pipeline_config(path)

    def test_missing_strategy_key(self):
        from superpixel_merge.config import PassConfig
        with pytest.raises(ValueError):
            PassConfig.from_dict({"preset": "HIGH_TEN"})

    def test_missing_file(self):
        from superpixel_merge.config import load_raw_config
        with pytest.raises(FileNotFoundError):
            load_raw_config("does_not_exist")

    def test_create_config_plain_dataclass(self, tmp_path):
        from superpixel_merge.config import TraversalConfig, create_config
        path = tmp_path / "opts.yaml"
        path.write_text("preset: HIGH_20\nlock_large: true\n")
        opts = create_config(path, TraversalConfig)
        assert opts.lock_large is True
        assert opts.backproject_range("HIGH_FIVE").name == "HIGH_20"

    @pytest.mark.parametrize("name,threshold,bins", [
        ("HIGH_FIVE",  0.95, 16),
        ("HIGH_FIVE8", 0.90,  8),
        ("HIGH_TEN",   0.90, 16),
        ("HIGH_15",    0.85, 16),
        ("HIGH_20",    0.80, 16),
        ("HIGH_50",    0.50,  8),
    ])
    def test_presets(self, name, threshold, bins):
        from superpixel_merge.config import BackprojectRange
        rng = BackprojectRange.from_name(name.lower())
        assert rng.threshold == pytest.approx(threshold)
        assert rng.num_bins == bins
        assert rng.slot == pytest.approx(0.05)

    def test_unknown_preset(self):
        from superpixel_merge.config import TraversalConfig
        with pytest.raises(ValueError, match="preset"):
            TraversalConfig(preset="HIGH_99").backproject_range("HIGH_FIVE")


# over-segmentation

class TestSuperpixelExtractor:

    @pytest.mark.parametrize("method", ["slic", "felzenszwalb"])
    def test_labels_shape(self, method):
        from superpixel_merge.oversegment import SuperpixelExtractor, OversegmentConfig
        img = _noisy_halves()
        seg = SuperpixelExtractor(OversegmentConfig(method=method, n_segments=30)).compute(img)
        assert seg.shape == img.shape[:2]
        assert seg.dtype == np.int32
        assert seg.min() >= 0
        assert len(np.unique(seg)) > 1

    def test_unknown_method(self):
        from superpixel_merge.oversegment import SuperpixelExtractor, OversegmentConfig
        with pytest.raises(ValueError):
            SuperpixelExtractor(OversegmentConfig(method="watershed"))


# pipeline

class TestMergePipeline:

    def test_default_passes(self):
        from superpixel_merge.pipeline import MergePipeline
        img, labels = _two_colour()
        result = MergePipeline().run(img, labels)
        assert result.n_initial == 8
        assert result.n_regions == 2
        assert result.passes == [("identical", 6), ("bfs_backproject", 0), ("tiny", 0)]
        assert result.labels.shape == labels.shape
        assert len(np.unique(result.labels[:, :4])) == 1
        assert len(np.unique(result.labels[:, 4:])) == 1
        # merged labels keep the input numbering
        assert set(np.unique(result.labels)) <= set(np.unique(labels))

    def test_bgr_tag_labels(self):
        from superpixel_merge.labels import encode_labels
        from superpixel_merge.pipeline import MergePipeline
        img, labels = _two_colour()
        result = MergePipeline().run(img, encode_labels(labels + 1))
        assert result.n_regions == 2

    def test_oversegments_when_no_labels(self):
        from superpixel_merge.oversegment import SuperpixelExtractor, OversegmentConfig
        from superpixel_merge.pipeline import MergePipeline
        img = _noisy_halves()
        pipe = MergePipeline(extractor=SuperpixelExtractor(OversegmentConfig(n_segments=40)))
        result = pipe.run(img)
        assert "oversegment" in result.timing
        assert 1 <= result.n_regions <= result.n_initial
        assert result.labels.shape == img.shape[:2]
        result.graph.check_invariants()

    def test_shape_mismatch(self):
        from superpixel_merge.pipeline import MergePipeline
        img, labels = _two_colour()
        with pytest.raises(ValueError, match="does not match"):
            MergePipeline().run(img, labels[:4])

    def test_observer_and_summary(self):
        from superpixel_merge.config import PassConfig, PipelineConfig
        from superpixel_merge.observer import MergeRecorder
        from superpixel_merge.pipeline import MergePipeline
        img, labels = _two_colour()
        cfg = PipelineConfig(passes=[PassConfig("dfs_fill"), PassConfig("tiny")])
        rec = MergeRecorder()
        result = MergePipeline(cfg, observer=rec).run(img, labels)
        assert [p[0] for p in rec.passes] == ["dfs_fill", "tiny"]
        assert len(rec.merges) == result.n_merges == 6
        summary = result.as_dict()
        assert summary["n_regions"] == 2
        assert summary["passes"][0] == {"strategy": "dfs_fill", "merges": 6}

    def test_save(self, tmp_path):
        import cv2
        from superpixel_merge.labels import decode_labels
        from superpixel_merge.pipeline import MergePipeline
        img, labels = _two_colour()
        result = MergePipeline().run(img, labels)
        prefix = str(tmp_path / "out")
        result.save(prefix)
        for suffix in ["tags", "regions", "mean", "boundaries"]:
            assert (tmp_path / f"out_{suffix}.png").exists()
        tags = cv2.imread(f"{prefix}_tags.png", cv2.IMREAD_COLOR)
        assert np.array_equal(decode_labels(tags), result.graph.to_label_image())


# rendering

class TestVisualise:

    def _graph(self):
        from superpixel_merge.graph import RegionGraph
        img, labels = _two_colour()
        return img, RegionGraph.from_label_image(labels)

    def test_colour_table(self):
        from superpixel_merge.visualise import colour_table
        _, g = self._graph()
        table = colour_table(g, seed=3)
        assert set(table) == set(g.store.tags)
        assert len(set(table.values())) == len(table)
        assert colour_table(g, seed=3) == table

    def test_render_labels_and_mean(self):
        from superpixel_merge.visualise import render_labels, render_mean
        img, g = self._graph()
        out = render_labels(g)
        assert out.shape == img.shape and out.dtype == np.uint8
        assert np.array_equal(render_mean(g, img), img)

    def test_render_boundaries(self):
        from superpixel_merge.visualise import render_boundaries
        img, g = self._graph()
        out = render_boundaries(g, img)
        assert out.shape == img.shape and out.dtype == np.uint8

    def test_plot_region_graph(self, tmp_path):
        pytest.importorskip("matplotlib")
        from superpixel_merge.visualise import plot_region_graph
        img, g = self._graph()
        fig = plot_region_graph(g, img, save_path=str(tmp_path / "rag.png"))
        assert fig is not None
        assert (tmp_path / "rag.png").exists()
