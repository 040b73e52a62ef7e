"""
Tests for the false positive demonstration and its command line.
"""

import logging
import random

import pytest

from simplebf import demo
from simplebf.config import DemoConfig
from simplebf.demo import (
    DemoError,
    DemoResult,
    format_report,
    generate_test_set,
    main,
    run_demo,
    total_size,
)


@pytest.fixture
def no_logging_setup(monkeypatch):
    """Keep main() from replacing the root logger handlers during tests."""
    monkeypatch.setattr(demo, "configure_logging", lambda log_level: None)


class TestTestSets:

    def test_generate_test_set_size(self):
        entries = generate_test_set(500, random.Random(1))

        assert len(entries) == 500
        assert all(entry.isdigit() for entry in entries)

    def test_generate_test_set_reproducible(self):
        assert generate_test_set(100, random.Random(7)) == generate_test_set(100, random.Random(7))

    def test_generate_test_set_excludes(self):
        rng = random.Random(3)
        targets = generate_test_set(200, rng)
        challenges = generate_test_set(200, rng, exclude=targets)

        assert len(challenges) == 200
        assert not targets & challenges

    def test_total_size_counts_terminator(self):
        # (1 + 1) * 8 + (2 + 1) * 8
        assert total_size(["1", "22"]) == 40
        assert total_size([]) == 0


class TestDemoConfig:

    def test_defaults(self):
        config = DemoConfig()

        assert config.log2_num_bits == 13
        assert config.num_entries == 1024
        assert config.num_challenges == 1024
        assert config.seed is None
        assert config.log_level == "INFO"

    def test_non_positive_sizes_use_defaults(self):
        config = DemoConfig(num_entries=0, num_challenges=-5, log_level="debug")

        assert config.num_entries == 1024
        assert config.num_challenges == 1024
        assert config.log_level == "DEBUG"


class TestRunDemo:

    def test_default_run(self):
        result = run_demo(DemoConfig(seed=1234))

        assert result.num_entries == 1024
        assert result.num_bits == 8192
        assert result.num_hashes == 5
        assert result.true_positive_rate == 1.0
        assert result.estimated_true_positive_rate == 1.0
        assert result.false_positive_rate < 0.1
        assert 0.01 < result.estimated_false_positive_rate < 0.05

    def test_run_is_reproducible_with_seed(self):
        config = DemoConfig(log2_num_bits=10, num_entries=100, num_challenges=500, seed=99)

        assert run_demo(config) == run_demo(config)

    def test_total_size_reported(self):
        result = run_demo(DemoConfig(log2_num_bits=10, num_entries=10, num_challenges=10, seed=1))

        # Each entry is at most 20 digits plus a terminator
        assert 10 * 2 * 8 <= result.total_size <= 10 * 21 * 8

    def test_size_error_is_fatal(self):
        with pytest.raises(DemoError, match="Failed to set the size"):
            run_demo(DemoConfig(log2_num_bits=0, seed=1))

    def test_hash_count_shortfall_only_warns(self, caplog):
        config = DemoConfig(log2_num_bits=2, num_entries=100, num_challenges=10, seed=1)

        with caplog.at_level(logging.WARNING):
            result = run_demo(config)

        assert "Failed to set optimal number of hash functions" in caplog.text
        assert result.num_hashes == 1
        assert result.true_positive_rate == 1.0


class TestReport:

    def test_format_report(self):
        result = DemoResult(
            num_entries=1024,
            total_size=172032,
            num_bits=8192,
            num_hashes=5,
            true_positive_rate=1.0,
            false_positive_rate=0.0234375,
            estimated_false_positive_rate=0.0217,
        )

        lines = format_report(result).splitlines()

        assert lines[0] == "[Test setting]"
        assert lines[1] == "The number of entries         : 1024"
        assert lines[2] == "The total data size           : 172032 [bits]"
        assert lines[4] == "[Bloom filter setting]"
        assert lines[5] == "The filter size               : 8192 [bits]"
        assert lines[6] == "The number of hash functions  : 5"
        assert lines[8] == "[Bloom filter test]"
        assert lines[9] == "True Positive Rate            : 1"
        assert lines[10] == "Estimated True Positive Rate  : 1"
        assert lines[11] == "False Positive Rate           : 0.0234375"
        assert lines[12] == "Estimated False Positive Rate : 0.0217"


class TestMain:

    def test_main_prints_report(self, capsys, no_logging_setup):
        assert main(["10", "100", "100", "7"]) == 0

        out = capsys.readouterr().out
        assert "[Bloom filter setting]" in out
        assert "The filter size               : 1024 [bits]" in out
        assert "The number of entries         : 100" in out

    def test_main_size_error_exit_code(self, capsys, no_logging_setup):
        assert main(["0"]) == 1
        assert capsys.readouterr().out == ""

    def test_main_help(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--help"])

        assert exc_info.value.code == 0
        assert "log2_num_bits" in capsys.readouterr().out

    def test_main_rejects_non_numeric(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["many"])

        assert exc_info.value.code == 2
