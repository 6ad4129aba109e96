"""
Tests for the maintenance script.
"""

import json
import time

from manage_site_stats import main


class TestManageSiteStats:
    """Command line actions against a data directory."""

    def _seed(self, data_dir):
        data_dir.mkdir()
        now = int(time.time())
        (data_dir / "online.json").write_text(json.dumps({"8.8.8.8": now, "1.1.1.1": now - 3600}))
        (data_dir / "visits.json").write_text(json.dumps({
            "8.8.8.8": {
                "first_visit": now, "last_visit": now, "visit_count": 2,
                "last_page_view": now, "last_visit_date": "2025-03-10", "last_session": now
            }
        }))
        (data_dir / "stats.json").write_text(json.dumps({
            "total_visitors": 1, "total_views": 4, "updated_at": now
        }))

    def test_cleanup(self, tmp_path, capsys):
        """--cleanup removes idle presence entries."""
        data_dir = tmp_path / "data"
        self._seed(data_dir)

        code = main(["--config", str(tmp_path / "none.json"), "--data-dir", str(data_dir), "--cleanup"])

        assert code == 0
        assert json.loads(capsys.readouterr().out) == {"removed": 1}
        assert list(json.loads((data_dir / "online.json").read_text())) == ["8.8.8.8"]

    def test_stats(self, tmp_path, capsys):
        """--stats prints totals and document sizes."""
        data_dir = tmp_path / "data"
        self._seed(data_dir)

        main(["--config", str(tmp_path / "none.json"), "--data-dir", str(data_dir), "--stats"])

        summary = json.loads(capsys.readouterr().out)
        assert summary["total_visitors"] == 1
        assert summary["total_views"] == 4
        assert summary["ledger_entries"] == 1
        assert summary["presence_entries"] == 2

    def test_visitor_lookup(self, tmp_path, capsys):
        """--visitor prints one record, or fails for an unknown client."""
        data_dir = tmp_path / "data"
        self._seed(data_dir)
        args = ["--config", str(tmp_path / "none.json"), "--data-dir", str(data_dir)]

        assert main(args + ["--visitor", "8.8.8.8"]) == 0
        assert json.loads(capsys.readouterr().out)["visit_count"] == 2

        assert main(args + ["--visitor", "9.9.9.9"]) == 1

    def test_unusable_data_dir(self, tmp_path):
        """A data directory that cannot be created exits with status 2."""
        blocker = tmp_path / "data"
        blocker.write_text("not a directory")

        code = main(["--config", str(tmp_path / "none.json"), "--data-dir", str(blocker), "--stats"])

        assert code == 2
