"""Tests for tc_common.id_generator and tc_common.datetime_utils."""

from datetime import UTC, datetime, timezone

import pytest

from src.tc_common.datetime_utils import as_utc, utc_now
from src.tc_common.id_generator import SnowflakeIdGenerator, generate_id


class TestSnowflakeIdGenerator:
    def test_prefixed(self) -> None:
        gen = SnowflakeIdGenerator(machine_id=1)
        prefix, _, number = gen.next_id("bk").partition("_")
        assert prefix == "bk"
        assert number.isdigit()

    def test_unique_ids(self) -> None:
        gen = SnowflakeIdGenerator(machine_id=1)
        ids = {gen.next_id("le") for _ in range(5000)}
        assert len(ids) == 5000

    def test_monotonically_increasing(self) -> None:
        gen = SnowflakeIdGenerator(machine_id=1)
        prev = gen.next_int()
        for _ in range(100):
            current = gen.next_int()
            assert current > prev
            prev = current

    def test_machine_id_range(self) -> None:
        with pytest.raises(ValueError):
            SnowflakeIdGenerator(machine_id=1024)

    def test_module_helper(self) -> None:
        assert generate_id("sk") != generate_id("sk")


class TestDatetimeUtils:
    def test_utc_now_is_aware(self) -> None:
        now = utc_now()
        assert isinstance(now, datetime)
        assert now.tzinfo == UTC

    def test_as_utc_attaches_zone_to_naive(self) -> None:
        value = as_utc(datetime(2026, 1, 1, 12, 0))
        assert value.tzinfo == timezone.utc
        assert value.hour == 12
