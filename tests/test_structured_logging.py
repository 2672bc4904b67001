import json

from issuevault.logging import StructuredLogger, configure_logging, get_logger


def _lines(captured: str) -> list[str]:
    return [line for line in captured.strip().split("\n") if line]


def test_structured_logger_json_format(capsys):
    logger = StructuredLogger(name="test", json_logging=True, level="INFO")
    logger.log_operation("writing_files", issue_count=3)

    log_lines = _lines(capsys.readouterr().err)
    assert len(log_lines) == 1
    entry = json.loads(log_lines[0])
    assert entry["level"] == "INFO"
    assert entry["message"] == "Operation: writing_files"
    assert entry["operation"] == "writing_files"
    assert entry["issue_count"] == 3
    assert "timestamp" in entry


def test_issue_action_includes_path(capsys):
    logger = StructuredLogger(name="test_issue", json_logging=True)
    logger.log_issue_action("archived", "acme/widgets#2", path="_issues/_archive/Two (2).md")
    entry = json.loads(_lines(capsys.readouterr().err)[0])
    assert entry["operation"] == "issue_archived"
    assert entry["issue"] == "acme/widgets#2"
    assert entry["path"] == "_issues/_archive/Two (2).md"


def test_json_logger_drops_consecutive_duplicates(capsys):
    logger = StructuredLogger(name="test_dedupe", json_logging=True)
    logger.log_operation("pull_start", project="p")
    logger.log_operation("pull_start", project="p")
    logger.log_operation("pull_start", project="q")
    assert len(_lines(capsys.readouterr().err)) == 2


def test_plain_logger_respects_level(capsys):
    logger = StructuredLogger(name="test_plain", json_logging=False, level="WARNING")
    logger.info("hidden")
    logger.warning("Image not found: ghost.png", image="ghost.png")
    lines = _lines(capsys.readouterr().err)
    assert len(lines) == 1
    assert "WARNING Image not found: ghost.png" in lines[0]


def test_timed_operation_logs_performance(capsys):
    logger = StructuredLogger(name="test_timed", json_logging=True)
    with logger.timed_operation("pull", project="p"):
        pass
    entries = [json.loads(line) for line in _lines(capsys.readouterr().err)]
    assert entries[0]["operation"] == "pull_start"
    assert entries[1]["operation"] == "pull"
    assert "duration_ms" in entries[1]


def test_configure_logging_replaces_global(capsys):
    logger = configure_logging(json_logging=True, level="DEBUG")
    assert get_logger() is logger
    logger.debug("debug visible", step="x")
    entry = json.loads(_lines(capsys.readouterr().err)[0])
    assert entry["step"] == "x"
    configure_logging()
