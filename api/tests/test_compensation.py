from ghosty.services.compensation import CompensationLog


def test_rollback_runs_newest_first():
    calls = []
    log = CompensationLog("test")
    log.record("upload", lambda: calls.append("remove file"))
    log.record("insert", lambda: calls.append("delete row"))

    assert log.rollback() == []
    assert calls == ["delete row", "remove file"]
    # a second rollback has nothing left to undo
    assert log.rollback() == []
    assert calls == ["delete row", "remove file"]


def test_failed_undo_does_not_stop_remaining_undos():
    calls = []

    def broken():
        raise RuntimeError("storage offline")

    log = CompensationLog("test")
    log.record("upload", lambda: calls.append("remove file"))
    log.record("review", broken)

    assert log.rollback() == ["review"]
    assert calls == ["remove file"]

