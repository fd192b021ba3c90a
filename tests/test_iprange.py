"""Tests for IPRange."""
import pytest

from errors import InvalidRangeError
from iprange import IPRange


class TestIPRange:

    def test_construct(self):
        r = IPRange("192.168.31.0", "192.168.31.255")
        assert r.size == 256
        assert len(r) == 256
        assert r.first_ip == "192.168.31.0"
        assert r.last_ip == "192.168.31.255"
        assert str(r) == "[192.168.31.0 - 192.168.31.255]"

    def test_begin_after_end(self):
        with pytest.raises(InvalidRangeError):
            IPRange(2, 1)

    def test_single_address(self):
        r = IPRange(5, 5)
        assert r.size == 1
        assert list(r) == [5]

    def test_full_space(self):
        r = IPRange(0, 0xFFFFFFFF)
        assert r.size == 1 << 32

    def test_from_cidr(self):
        r = IPRange.from_cidr("192.168.31.123/24")
        assert r.first_ip == "192.168.31.0"
        assert r.last_ip == "192.168.31.255"

    def test_from_network_mask(self):
        r = IPRange.from_network_mask("10.1.2.3", 16)
        assert r.first_ip == "10.1.0.0"
        assert r.last_ip == "10.1.255.255"
        assert IPRange.from_network_mask(0, 0).size == 1 << 32
        assert IPRange.from_network_mask("10.0.0.9", 32).size == 1

    @pytest.mark.parametrize("bits", [-1, 33])
    def test_from_network_mask_bad_bits(self, bits):
        with pytest.raises(InvalidRangeError):
            IPRange.from_network_mask(0, bits)

    def test_parse(self):
        assert IPRange.parse("10.0.0.0/30") == IPRange("10.0.0.0", "10.0.0.3")
        assert IPRange.parse("10.0.0.5 - 10.0.0.9") == IPRange("10.0.0.5", "10.0.0.9")
        assert IPRange.parse("10.0.0.5") == IPRange("10.0.0.5", "10.0.0.5")

    def test_has(self):
        r = IPRange(1, 2)
        assert r.has("0.0.0.1")
        assert r.has(2)
        assert not r.has("0.0.0.3")
        assert 1 in r
        assert 0 not in r

    def test_has_overlap(self):
        r = IPRange(1, 2)
        assert not r.has_overlap(IPRange(10, 11))
        assert r.has_overlap(IPRange(2, 3))
        assert r.has_overlap(IPRange(0, 1))
        assert r.has_overlap(IPRange(0, 100))
        assert not r.has_overlap(IPRange(3, 3))

    def test_at(self):
        r = IPRange(10, 19)
        assert r.at(0) == 10
        assert r.at(9) == 19
        assert r.at(-1) == 19
        assert r.at(-10) == 10
        with pytest.raises(IndexError):
            r.at(10)
        with pytest.raises(IndexError):
            r.at(-11)

    def test_split(self):
        left, right = IPRange(1, 10).split(3)
        assert left == IPRange(1, 3)
        assert right == IPRange(4, 10)

    def test_split_covers_original(self):
        r = IPRange(100, 116)
        for n in range(1, r.size):
            left, right = r.split(n)
            assert left.size == n
            assert left.end_num + 1 == right.begin_num
            assert not left.has_overlap(right)
            assert list(left) + list(right) == list(r)

    @pytest.mark.parametrize("n", [0, 10, 11])
    def test_split_invalid(self, n):
        r = IPRange(1, 10)
        with pytest.raises(InvalidRangeError):
            r.split(n)
        assert r == IPRange(1, 10)

    def test_pop_and_trim(self):
        r = IPRange(1, 10)
        assert r.pop_left() == 1
        assert r == IPRange(2, 10)

        assert r.pop_right() == 10
        assert r == IPRange(2, 9)

        removed = r.trim_left(3)
        assert removed == IPRange(2, 4)
        assert r == IPRange(5, 9)

        removed = r.trim_right(3)
        assert removed == IPRange(7, 9)
        assert r == IPRange(5, 6)

    def test_pop_single_address(self):
        r = IPRange(7, 7)
        with pytest.raises(InvalidRangeError):
            r.pop_left()
        with pytest.raises(InvalidRangeError):
            r.pop_right()
        assert r == IPRange(7, 7)

    @pytest.mark.parametrize("count", [0, 5, 6])
    def test_trim_side_invalid(self, count):
        r = IPRange(1, 5)
        with pytest.raises(InvalidRangeError):
            r.trim_left(count)
        with pytest.raises(InvalidRangeError):
            r.trim_right(count)
        assert r == IPRange(1, 5)

    def test_trim_returns_copy(self):
        r = IPRange("192.168.31.0", "192.168.31.255")
        r2 = r.trim(10, 10)
        assert r2.first_ip == "192.168.31.10"
        assert r2.last_ip == "192.168.31.245"
        assert r.size == 256

    def test_trim_to_single(self):
        assert IPRange(1, 5).trim(2, 2) == IPRange(3, 3)

    @pytest.mark.parametrize("left,right", [(3, 2), (5, 0), (-1, 0)])
    def test_trim_invalid(self, left, right):
        with pytest.raises(InvalidRangeError):
            IPRange(1, 5).trim(left, right)

    def test_copies_are_independent(self):
        r = IPRange(1, 10)
        c = r.copy()
        c.pop_left()
        assert r == IPRange(1, 10)
        assert c == IPRange(2, 10)

    def test_to_cidrs(self):
        assert IPRange.from_cidr("10.0.0.0/24").to_cidrs() == ["10.0.0.0/24"]
        assert IPRange("10.0.0.1", "10.0.0.4").to_cidrs() == [
            "10.0.0.1/32",
            "10.0.0.2/31",
            "10.0.0.4/32",
        ]
