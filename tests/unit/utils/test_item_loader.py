"""Tests for drill item loading."""

from __future__ import annotations

import json

import pytest

from gauntlet.core.errors import InvalidConfigError
from gauntlet.utils.item_loader import load_drill_items


class TestLoadDrillItems:
    """Test loading drill item files."""

    def _write(self, tmp_path, data):
        path = tmp_path / "items.json"
        path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
        return path

    def test_load_items(self, tmp_path):
        """Test a valid file loads every item."""
        path = self._write(
            tmp_path,
            [
                {"id": "n1", "prompt": "猫", "answers": ["cat", "neko"]},
                {"prompt": "犬", "answers": ["dog"]},
            ],
        )

        items = load_drill_items(path)

        assert len(items) == 2
        assert items[0].id == "n1"
        assert items[1].id is None
        assert items[1].answers == ["dog"]

    def test_single_answer_shorthand(self, tmp_path):
        """Test a lone "answer" string is accepted."""
        path = self._write(tmp_path, [{"prompt": "鳥", "answer": "bird"}])

        items = load_drill_items(path)

        assert items[0].answers == ["bird"]

    def test_missing_file(self, tmp_path):
        """Test a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_drill_items(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        """Test broken JSON is reported as a config error."""
        path = tmp_path / "items.json"
        path.write_text("[{", encoding="utf-8")

        with pytest.raises(InvalidConfigError):
            load_drill_items(path)

    def test_not_a_list(self, tmp_path):
        """Test the top level must be a list."""
        path = self._write(tmp_path, {"prompt": "猫", "answers": ["cat"]})

        with pytest.raises(InvalidConfigError) as exc_info:
            load_drill_items(path)

        assert exc_info.value.field == "items"

    def test_invalid_item_names_index(self, tmp_path):
        """Test the offending item index is reported."""
        path = self._write(
            tmp_path,
            [{"prompt": "猫", "answers": ["cat"]}, {"prompt": "犬", "answers": []}],
        )

        with pytest.raises(InvalidConfigError, match="index 1"):
            load_drill_items(path)
