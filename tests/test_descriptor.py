import numpy as np
import pytest

from bowtree.descriptor import as_matrix, from_string, hamming, hamming_matrix, mean_value, to_string, unpack


def test_hamming_counts_differing_bits():
    a = np.array([0b00001111, 0], dtype=np.uint8)
    b = np.array([0b00000001, 255], dtype=np.uint8)
    assert hamming(a, b) == 3 + 8
    assert hamming(a, a) == 0


def test_hamming_rejects_different_sizes():
    with pytest.raises(ValueError):
        hamming(np.zeros(2, np.uint8), np.zeros(3, np.uint8))


def test_hamming_matrix_matches_pairwise():
    rng = np.random.RandomState(1)
    x = rng.randint(0, 256, size=(7, 64)).astype(np.uint8)
    c = rng.randint(0, 256, size=(3, 64)).astype(np.uint8)
    d = hamming_matrix(x, c)
    assert d.shape == (7, 3)
    for i in range(7):
        for j in range(3):
            assert d[i, j] == hamming(x[i], c[j])


def test_mean_value_is_bitwise_majority():
    odd = np.array([[0xFF], [0x0F], [0x00]], dtype=np.uint8)
    assert mean_value(odd)[0] == 0x0F

    # with an even count, half of the votes are enough
    even = np.array([[0xF0], [0x0F]], dtype=np.uint8)
    assert mean_value(even)[0] == 0xFF


def test_mean_value_of_empty_set_fails():
    with pytest.raises(ValueError):
        mean_value(np.empty((0, 64), dtype=np.uint8))


def test_as_matrix_accepts_rows_and_matrices():
    rows = [np.full((1, 4), i, dtype=np.uint8) for i in range(3)]
    m = as_matrix(rows)
    assert m.shape == (3, 4)
    assert m[2, 0] == 2
    assert as_matrix(m).shape == (3, 4)
    assert as_matrix(np.zeros(4, dtype=np.uint8)).shape == (1, 4)
    assert len(as_matrix([])) == 0


def test_unpack_expands_bits():
    bits = unpack(np.array([0b10000001], dtype=np.uint8))
    assert bits.tolist() == [[1, 0, 0, 0, 0, 0, 0, 1]]


def test_string_form():
    d = np.array([0, 17, 255], dtype=np.uint8)
    assert to_string(d) == "0 17 255"
    assert np.array_equal(from_string("0 17 255"), d)
    with pytest.raises(ValueError):
        from_string("1 256")


def test_bit_level_helpers_match_packed_ones():
    from bowtree.descriptor import hamming_matrix_bits, majority_bits

    rng = np.random.RandomState(2)
    x = rng.randint(0, 256, size=(9, 64)).astype(np.uint8)
    c = rng.randint(0, 256, size=(4, 64)).astype(np.uint8)
    xb = unpack(x).astype(np.float32)
    cb = unpack(c).astype(np.float32)

    d = hamming_matrix_bits(xb, cb)
    assert d.dtype == np.int32
    assert np.array_equal(d, hamming_matrix(x, c))
    assert d[3, 1] == hamming(x[3], c[1])
    assert np.array_equal(majority_bits(xb), mean_value(x))
    with pytest.raises(ValueError):
        majority_bits(xb[:0])
