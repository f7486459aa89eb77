import pytest

from academy.errors import InvalidConfiguration
from labs.cracker import (
    AttackMode,
    CrackSession,
    CrackStatus,
    build_charset,
    generate_target,
    next_candidate,
    odometer,
    password_strength,
)

from support import ManualScheduler


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_odometer_order():
    assert list(odometer("ab", 2)) == ["aa", "ab", "ba", "bb"]
    assert next_candidate("bb", "ab") is None


def test_brute_force_finds_binary_target():
    session = CrackSession("101", AttackMode.BRUTE_FORCE, "01")
    assert session.search_space == 8
    assert session.run() is CrackStatus.CRACKED
    # 000 001 010 011 100 101
    assert session.attempts == 6
    assert session.report()["password"] == "101"


def test_dictionary_exhausts_after_every_word():
    words = ["alpha", "bravo", "charlie"]
    session = CrackSession("zulu", AttackMode.DICTIONARY, dictionary=words)
    assert session.run() is CrackStatus.EXHAUSTED
    assert session.attempts == len(words)
    assert "password" not in session.report()


def test_hybrid_falls_back_to_brute_force():
    session = CrackSession("ba", AttackMode.HYBRID, "ab", dictionary=["xx", "yy"])
    assert session.search_space == 2 + 4
    session.run(max_steps=2)
    assert session.phase is AttackMode.DICTIONARY
    assert session.run() is CrackStatus.CRACKED
    assert session.phase is AttackMode.BRUTE_FORCE
    assert session.attempts == 2 + 3


def test_hybrid_hits_dictionary_first():
    session = CrackSession("letmein", "hybrid", "abc")
    session.run()
    assert session.status is CrackStatus.CRACKED
    assert session.phase is AttackMode.DICTIONARY


def test_duplicate_charset_terminates():
    session = CrackSession("zz", AttackMode.BRUTE_FORCE, "aab")
    assert session.charset == "ab"
    assert session.run() is CrackStatus.EXHAUSTED
    assert session.attempts == 4


def test_stop_and_step_after_finish():
    session = CrackSession("9999", AttackMode.BRUTE_FORCE, "0123456789")
    session.run(max_steps=10)
    session.stop()
    assert session.status is CrackStatus.STOPPED
    assert session.step() is CrackStatus.STOPPED
    assert session.attempts == 10


def test_invalid_configuration():
    with pytest.raises(InvalidConfiguration):
        CrackSession("abc", AttackMode.BRUTE_FORCE, "")
    with pytest.raises(InvalidConfiguration):
        CrackSession("abc", "rainbow-table", "abc")
    with pytest.raises(InvalidConfiguration):
        generate_target("", 4)
    with pytest.raises(InvalidConfiguration):
        generate_target("abc", 0)


def test_generate_target_uses_charset():
    target = generate_target("01", 12)
    assert len(target) == 12
    assert set(target) <= {"0", "1"}


def test_charset_and_strength():
    assert build_charset(lowercase=False, digits=True) == "0123456789"
    assert len(build_charset(True, True, True, True)) == 26 + 26 + 10 + 26
    assert password_strength("1234") == (20, "weak")
    assert password_strength("Tr0ub4dor&3")[1] == "very strong"


def test_metrics_use_clock():
    clock = FakeClock()
    session = CrackSession("11", AttackMode.BRUTE_FORCE, "01", clock=clock)
    session.step()
    clock.now += 2.0
    session.run()
    assert session.elapsed == pytest.approx(2.0)
    assert session.throughput == pytest.approx(2.0)
    assert session.progress == 100.0


def test_scheduled_ticks():
    scheduler = ManualScheduler()
    finished = []
    session = CrackSession("1", AttackMode.BRUTE_FORCE, "01")
    session.start(scheduler, 0.1, on_finish=finished.append)

    scheduler.run_pending()
    assert session.status is CrackStatus.RUNNING
    scheduler.run_pending()
    assert session.status is CrackStatus.CRACKED
    assert finished == [session]
    assert scheduler.pending() == 0


def test_stop_cancels_ticks():
    scheduler = ManualScheduler()
    session = CrackSession("11111", AttackMode.BRUTE_FORCE, "01")
    session.start(scheduler, 0.1)
    session.stop()
    assert scheduler.run_pending() == 0
    assert session.attempts == 0
