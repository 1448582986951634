from ysba_ticker.config import DEFAULT_BROWSER_ARGS, AppConfig
from ysba_ticker.teams import TEAM_NAMES, team_name_table


def test_defaults(monkeypatch):
    for name in ("BROWSER_ARGS", "PARTITIONS_JSON", "TEAM_NAMES_JSON"):
        monkeypatch.delenv(name, raising=False)

    cfg = AppConfig()

    assert cfg.cache_ttl_seconds == 1800
    assert cfg.max_retries == 3
    assert cfg.schedule_category == "1"
    assert cfg.browser_args == DEFAULT_BROWSER_ARGS
    assert cfg.partitions is None


def test_browser_args_are_appended(monkeypatch):
    monkeypatch.setenv("BROWSER_ARGS", "--single-process, --mute-audio")

    cfg = AppConfig()

    assert cfg.browser_args[-2:] == ["--single-process", "--mute-audio"]
    assert cfg.browser_args[: len(DEFAULT_BROWSER_ARGS)] == DEFAULT_BROWSER_ARGS


def test_partitions_json(monkeypatch):
    monkeypatch.setenv("PARTITIONS_JSON", '{"9U-select": {"value": "13", "tiers": {"all-tiers": {"value": "__ALL__"}}}}')

    cfg = AppConfig()

    assert list(cfg.partitions) == ["9U-select"]


def test_invalid_json_is_ignored(monkeypatch):
    monkeypatch.delenv("BROWSER_ARGS", raising=False)
    monkeypatch.setenv("PARTITIONS_JSON", "{not json")
    monkeypatch.setenv("TEAM_NAMES_JSON", "[1, 2]")

    cfg = AppConfig()

    assert cfg.partitions is None
    assert cfg.team_names == {}


def test_team_names_json_and_explicit_overrides(monkeypatch):
    monkeypatch.setenv("TEAM_NAMES_JSON", '{"511113": "Phoenix", "600001": "Expansion Club"}')

    cfg = AppConfig(team_names={"600001": "Expansion Club 9U"})

    assert cfg.team_names == {"511113": "Phoenix", "600001": "Expansion Club 9U"}
    table = team_name_table(cfg.team_names)
    assert table["511113"] == "Phoenix"
    assert table["511108"] == TEAM_NAMES["511108"]


def test_refresh_partitions(monkeypatch):
    monkeypatch.delenv("REFRESH_PARTITIONS", raising=False)
    assert AppConfig().refresh_partitions == ["9U-select/all-tiers"]

    monkeypatch.setenv("REFRESH_PARTITIONS", "9U-select/all-tiers,11U-rep/tier-1")

    assert AppConfig().refresh_partitions == ["9U-select/all-tiers", "11U-rep/tier-1"]
