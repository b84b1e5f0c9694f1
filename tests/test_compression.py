import pytest

from katsuba.compression import DecompressionError, deflate, inflate


@pytest.mark.parametrize(
    "data",
    [b"", b"this is subdir text1\n", b"does this work?" * 100, bytes(range(256))],
)
def test_round_trip(data):
    assert inflate(deflate(data), len(data)) == data


def test_deflate_produces_zlib_header():
    compressed = deflate(b"does this work?")
    assert compressed[0] == 0x78


def test_repetitive_data_shrinks():
    data = b"a" * 4096
    assert len(deflate(data)) < len(data)


def test_inflate_twice_gives_same_result():
    compressed = deflate(b"this is text1\n")
    first = inflate(compressed, 14)
    second = inflate(compressed, 14)
    assert first == b"this is text1\n"
    assert second == b"this is text1\n"


def test_expected_size_too_small():
    data = b"does this work?"
    with pytest.raises(DecompressionError):
        inflate(deflate(data), len(data) - 1)


def test_expected_size_too_large():
    data = b"does this work?"
    with pytest.raises(DecompressionError):
        inflate(deflate(data), len(data) + 1)


def test_garbage_input():
    with pytest.raises(DecompressionError):
        inflate(b"not a zlib stream", 10)


def test_truncated_stream():
    data = b"it does!" * 50
    compressed = deflate(data)
    with pytest.raises(DecompressionError):
        inflate(compressed[: len(compressed) // 2], len(data))


def test_negative_size_rejected():
    with pytest.raises(ValueError):
        inflate(deflate(b"x"), -1)