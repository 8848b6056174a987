"""
tests/test_targets.py

Target list loading: accepted shape, fatal schema errors, limit.
"""

from __future__ import annotations

import orjson
import pytest

from parts_scraper.errors import TargetSourceError
from parts_scraper.targets import load_targets, parse_targets


def _write(path, data) -> None:
    path.write_bytes(orjson.dumps(data))


class TestLoadTargets:
    def test_reads_in_order(self, tmp_path) -> None:
        path = tmp_path / "product_data.json"
        _write(path, [{"product_link": " https://s/products/a "}, {"product_link": "https://s/products/b"}])
        targets = load_targets(path)
        assert [t.url for t in targets] == ["https://s/products/a", "https://s/products/b"]

    def test_limit(self, tmp_path) -> None:
        path = tmp_path / "product_data.json"
        _write(path, [{"product_link": f"https://s/products/{i}"} for i in range(5)])
        assert len(load_targets(path, limit=2)) == 2

    def test_custom_field(self) -> None:
        targets = parse_targets([{"url": "https://s/x"}], url_field="url")
        assert targets[0].url == "https://s/x"

    def test_duplicates_are_kept(self) -> None:
        targets = parse_targets([{"product_link": "https://s/x"}] * 2)
        assert len(targets) == 2

    @pytest.mark.parametrize(
        "data",
        [
            {"product_link": "https://s/x"},
            ["https://s/x"],
            [{"link": "https://s/x"}],
            [{"product_link": ""}],
            [{"product_link": 42}],
        ],
    )
    def test_bad_shapes_are_fatal(self, data) -> None:
        with pytest.raises(TargetSourceError):
            parse_targets(data)

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(TargetSourceError):
            load_targets(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path) -> None:
        path = tmp_path / "product_data.json"
        path.write_text("[{", encoding="utf-8")
        with pytest.raises(TargetSourceError):
            load_targets(path)
