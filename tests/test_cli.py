"""Tests for the rodcache command-line interface."""

from unittest.mock import MagicMock

import pytest

from conftest import product_row

from rodcache import cli
from rodcache.accelerator.redis_cache import RedisAcceleratorCache
from rodcache.core.exceptions import CacheUnavailableError
from rodcache.core.sync import SynchronizationEngine, SyncStats


@pytest.fixture
def patched_cache(monkeypatch, redis_double):
    monkeypatch.setattr(cli, "open_cache", lambda settings: RedisAcceleratorCache(client=redis_double))
    return redis_double


@pytest.fixture
def config_path(tmp_path):
    # Empty settings file; the CLI tests patch out connections.
    path = tmp_path / "rodcache.yaml"
    path.write_text("sync:\n  workers: 1\n")
    return path


def run(config_path, *args):
    return cli.main(["--config", str(config_path), *args])


class TestParser:
    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])

    def test_get_key_requires_key(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["get-key"])


class TestDumpKeys:
    def test_lists_keys(self, patched_cache, config_path, capsys):
        patched_cache.data.update({"2+B": "v", "1+A": "v"})
        assert run(config_path, "dump-keys") == 0
        out = capsys.readouterr().out
        assert out.index("1+A") < out.index("2+B")
        assert "Number of keys in cache: 2" in out

    def test_pattern(self, patched_cache, config_path, capsys):
        patched_cache.data.update({"1+A": "v", "1+B": "v"})
        run(config_path, "dump-keys", "--pattern", "*+B")
        assert "Number of keys in cache: 1" in capsys.readouterr().out


class TestGetKey:
    VALUE = (
        '{"nsn":"7644012312312","nrn":"CB01USC512L","fileDate":"2024-05-01T12:00:00Z",'
        '"size":1500,"hash":"900150983cd24fb0d6963f7d28e17f72"}'
    )

    def test_missing_key(self, patched_cache, config_path, capsys):
        assert run(config_path, "get-key", "--key", "1+A") == 0
        assert "is not in the cache" in capsys.readouterr().out

    def test_value_and_deserialize(self, patched_cache, config_path, capsys):
        patched_cache.data["7644012312312+CB01USC512L"] = self.VALUE
        run(config_path, "get-key", "--key", "7644012312312+CB01USC512L", "--deserialize")
        out = capsys.readouterr().out
        assert self.VALUE in out
        assert "Size => [ 1500 ]" in out

    def test_products_lookup(self, patched_cache, config_path, capsys, monkeypatch, products, add_rows):
        add_rows(product_row(), product_row(nrn="OTHER"))
        monkeypatch.setattr(cli, "open_products", lambda settings: products)
        patched_cache.data["7644012312312+CB01USC512L"] = self.VALUE

        run(config_path, "get-key", "--key", "7644012312312+CB01USC512L", "--products")

        out = capsys.readouterr().out
        assert "Number of products for NSN [ 7644012312312 ] NRN [ CB01USC512L ]: 1" in out

    def test_malformed_key_skips_product_lookup(self, patched_cache, config_path, capsys, monkeypatch):
        open_products = MagicMock()
        monkeypatch.setattr(cli, "open_products", open_products)
        patched_cache.data["garbage"] = "v"

        run(config_path, "get-key", "--key", "garbage", "--products")

        assert "Product lookup skipped" in capsys.readouterr().out
        open_products.assert_not_called()


class TestClearCache:
    def test_clears_matching_keys(self, patched_cache, config_path, capsys):
        patched_cache.data.update({"1+A": "v", "2+A": "v", "3+B": "v"})
        assert run(config_path, "clear-cache", "--pattern", "*+A") == 0
        assert set(patched_cache.data) == {"3+B"}
        assert "Removed 2 of 2 keys." in capsys.readouterr().out


class TestSync:
    def test_prints_summary(self, monkeypatch, config_path, capsys):
        engine = MagicMock()
        engine.run.return_value = SyncStats(total=2, succeeded=2)
        from_settings = MagicMock(return_value=engine)
        monkeypatch.setattr(SynchronizationEngine, "from_settings", from_settings)

        assert run(config_path, "sync", "--workers", "3") == 0

        assert from_settings.call_args.kwargs["max_workers"] == 3
        assert "[ 2 ] succeeded" in capsys.readouterr().out

    def test_batch_error_exits_nonzero(self, monkeypatch, config_path, capsys):
        engine = MagicMock()
        engine.run.side_effect = CacheUnavailableError("Redis cache is unavailable")
        monkeypatch.setattr(SynchronizationEngine, "from_settings", MagicMock(return_value=engine))

        assert run(config_path, "sync") == 1
        assert "Redis cache is unavailable" in capsys.readouterr().err

    def test_missing_configuration_exits_nonzero(self, config_path, capsys):
        assert run(config_path, "sync") == 1
        assert "was not supplied" in capsys.readouterr().err

    def test_unknown_driver_exits_nonzero(self, tmp_path, capsys):
        path = tmp_path / "bad-driver.yaml"
        path.write_text(
            "db:\n"
            "  driver: nosuchdialect\n"
            f"  connection_string: sqlite:///{tmp_path / 'p.db'}\n"
            "  user: u\n"
            "  password: p\n"
            "accelerator:\n"
            "  db:\n"
            "    driver: nosuchdialect\n"
            f"    connection_string: sqlite:///{tmp_path / 'a.db'}\n"
            "    user: u\n"
            "    password: p\n"
        )
        assert run(path, "sync") == 1
        assert "nosuchdialect" in capsys.readouterr().err
