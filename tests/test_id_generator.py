import pytest

from app.id_generator import EPOCH_MS, MAX_SEQUENCE, SEQUENCE_BITS, WORKER_ID_BITS, Snowflake


def test_ids_are_unique_and_increasing():
    gen = Snowflake(worker_id=7)
    ids = [gen.next_id() for _ in range(5000)]
    assert len(set(ids)) == len(ids)
    assert ids == sorted(ids)


def test_worker_id_is_encoded():
    gen = Snowflake(worker_id=513)
    value = gen.next_id()
    assert (value >> SEQUENCE_BITS) & ((1 << WORKER_ID_BITS) - 1) == 513


def test_clock_moving_backwards_keeps_ids_increasing(monkeypatch):
    gen = Snowflake(worker_id=1)
    now = [EPOCH_MS + 10_000]
    monkeypatch.setattr(gen, "_now_ms", lambda: now[0])
    first = gen.next_id()
    now[0] -= 5
    second = gen.next_id()
    assert second > first


def test_exhausted_sequence_on_frozen_clock_does_not_wait(monkeypatch):
    gen = Snowflake(worker_id=1)
    monkeypatch.setattr(gen, "_now_ms", lambda: EPOCH_MS + 10_000)
    ids = [gen.next_id() for _ in range(MAX_SEQUENCE + 3)]
    assert len(set(ids)) == len(ids)
    assert ids == sorted(ids)
    assert ids[-1] >> (WORKER_ID_BITS + SEQUENCE_BITS) == 10_001


def test_generate_key_is_decimal_string():
    key = Snowflake(worker_id=1).generate_key()
    assert isinstance(key, str) and key.isdigit()


@pytest.mark.parametrize("worker_id", [-1, 1024])
def test_rejects_out_of_range_worker(worker_id):
    with pytest.raises(ValueError):
        Snowflake(worker_id=worker_id)
