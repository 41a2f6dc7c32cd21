"""
Unit tests for ConfigManager: YAML loading, dot-notation reads and overrides.
"""

from pathlib import Path

import pytest

from nowgame.core.config.manager import ConfigManager


def write_yaml(directory: Path, name: str, content: str) -> None:
    (directory / name).write_text(content, encoding="utf-8")


@pytest.mark.asyncio
class TestYamlLoading:
    async def test_reads_nested_keys(self, tmp_path):
        write_yaml(tmp_path, "balance.yaml", "shop:\n  gacha_cost: 30\n")
        manager = ConfigManager(config_dir=tmp_path)

        await manager.initialize()

        assert manager.is_initialized
        assert manager.get("shop.gacha_cost", 10) == 30

    async def test_files_are_deep_merged(self, tmp_path):
        write_yaml(tmp_path, "a.yaml", "health:\n  reset_hour: 6\n")
        write_yaml(tmp_path, "b.yaml", "health:\n  deduction_step: 3\n")
        manager = ConfigManager(config_dir=tmp_path)

        await manager.initialize()

        assert manager.get("health.reset_hour") == 6
        assert manager.get("health.deduction_step") == 3

    async def test_broken_file_is_skipped(self, tmp_path):
        write_yaml(tmp_path, "bad.yaml", "shop: [unclosed\n")
        write_yaml(tmp_path, "good.yaml", "shop:\n  gacha_cost: 7\n")
        manager = ConfigManager(config_dir=tmp_path)

        await manager.initialize()

        assert manager.get("shop.gacha_cost", 10) == 7

    async def test_missing_directory_uses_code_defaults(self, tmp_path):
        manager = ConfigManager(config_dir=tmp_path / "nope")

        await manager.initialize()

        assert manager.get("shop.gacha_cost", 10) == 10

    async def test_shipped_config_matches_code_defaults(self):
        """The repository's config/ directory holds the documented tunables."""
        manager = ConfigManager()

        await manager.initialize()

        assert manager.get("wisdom.task.xp_per_completion") == 5
        assert manager.get("shop.item_duration_seconds") == 86400
        assert manager.get("health.reset_hour") == 7


class TestReads:
    def test_constructor_defaults(self):
        manager = ConfigManager(defaults={"shop": {"gacha_cost": 12}})

        assert manager.get("shop.gacha_cost", 10) == 12
        assert manager.get("shop.unknown", "fallback") == "fallback"
        assert manager.get("shop.gacha_cost.deeper", 1) == 1

    def test_override_wins(self):
        manager = ConfigManager(defaults={"shop": {"gacha_cost": 12}})

        manager.set("shop.gacha_cost", 99)

        assert manager.get("shop.gacha_cost", 10) == 99
        assert "shop.gacha_cost" in manager.get_all_keys()
        assert "shop" in manager.get_all_keys()
