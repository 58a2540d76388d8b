"""Dashboard log plumbing. Nothing here starts the live display."""

from autopull.stats import PullStats
from autopull.ui import Dashboard, LogBuffer, make_logger


class TestLogBuffer:
    def test_keeps_newest_lines(self):
        buf = LogBuffer(max_lines=3)
        for i in range(5):
            buf.add(f"line {i}", "INFO")
        assert [msg for _, _, msg in buf.get_all()] == ["line 2", "line 3", "line 4"]

    def test_records_level(self):
        buf = LogBuffer()
        buf.add("clicked", "CLICK")
        (_, level, msg), = buf.get_all()
        assert (level, msg) == ("CLICK", "clicked")


class TestMakeLogger:
    def _dash(self, tmp_path):
        return Dashboard(PullStats(str(tmp_path / "log.txt")))

    def test_debug_hidden_by_default(self, tmp_path):
        dash = self._dash(tmp_path)
        log = make_logger(dash)
        log("score 0.42", "DEBUG")
        log("started", "INFO")
        assert [lvl for _, lvl, _ in dash._log.get_all()] == ["INFO"]

    def test_debug_shown_when_enabled(self, tmp_path):
        dash = self._dash(tmp_path)
        log = make_logger(dash, debug=True)
        log("score 0.42", "DEBUG")
        assert [lvl for _, lvl, _ in dash._log.get_all()] == ["DEBUG"]

    def test_status_round_trip(self, tmp_path):
        dash = self._dash(tmp_path)
        assert dash.status == Dashboard.STATUS_IDLE
        dash.set_status(Dashboard.STATUS_RUNNING, "cycle 1")
        assert dash.status == Dashboard.STATUS_RUNNING
