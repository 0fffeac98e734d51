import pytest
from helpers import BASE_TS, DummyRedmineAPI, FakeRepo, baseline, merge, raw_issue

from feature_gap.comparator import Comparator
from feature_gap.core.config import parse_settings
from feature_gap.core.errors import ReportError, SyncError
from feature_gap.repository.sync import Credentials

START = "a" * 40


def _settings(tmp_path, **report):
    return parse_settings(
        {
            "git": {
                "username": "jdoe",
                "pat": "token",
                "repository_url_prefix": "https://git.example.com/product/",
                "clone_dir": str(tmp_path / "clones"),
                "repositories": [
                    {"name": "core", "start_sha": START, "compare_from": ["main"], "compare_to": ["release"]}
                ],
            },
            "redmine": {"server_url": "https://redmine.example.com", "planned_feature_subjects": ["[Backport]"]},
            "report": {"comparison_note_path": str(tmp_path / "note.md"), **report},
        }
    )


def _repos():
    from_repo = FakeRepo(
        {
            "main": [
                merge("m4", "Merge branch 'tidy' into 'main'", ts=BASE_TS + 40),
                merge("m3", "Merge branch 'f12' into 'main' #12", ts=BASE_TS + 30),
                merge("m2", "Merge branch 'f11' into 'main' #11", ts=BASE_TS + 20),
                merge("m1", "Merge branch 'f10' into 'main' #10", ts=BASE_TS + 10),
                baseline(START),
            ]
        }
    )
    to_repo = FakeRepo({"release": [merge("r1", "Merge branch 'f10' into 'release' #10"), baseline(START)]})
    return {"from": from_repo, "to": to_repo}


class FakeSynchronizer:
    def __init__(self, repos, fail_on=None):
        self.repos = repos
        self.fail_on = fail_on
        self.calls = []

    def __call__(self, repo_name, branch_name, local_path, remote_url, credentials):
        self.calls.append((repo_name, branch_name, local_path.name, remote_url, credentials))
        if branch_name == self.fail_on:
            raise SyncError(f"Could not find remote branch '{branch_name}' in repository {repo_name}.")
        return self.repos[local_path.name]


def _api():
    return DummyRedmineAPI(
        open_issues=[
            raw_issue(10),
            raw_issue(11, tracker="Bug", subject="Crash", children=[(110, "[Backport] Crash to 2.x")]),
            raw_issue(110, status_id=1),
        ],
        closed_issues=[raw_issue(12, subject="Export", status_id=5, closed=True)],
    )


def test_run_writes_note(tmp_path):
    repos = _repos()
    sync = FakeSynchronizer(repos)
    creds = Credentials("jdoe", "token")
    comparator = Comparator(_settings(tmp_path), _api(), credentials=creds, synchronizer=sync)
    results = comparator.run()

    assert [i.id for i in results["core"].missing] == [12]
    assert [i.id for i in results["core"].planned] == [11]
    assert results["core"].unknown == ["Merge branch 'tidy' into 'main'"]
    note = (tmp_path / "note.md").read_text(encoding="utf-8-sig")
    assert note.splitlines()[:5] == [
        "## Core",
        "- Missing features:",
        " - Feature #12: Export",
        "- Unknown features:",
        " - Merge branch 'tidy' into 'main'",
    ]
    assert [c[:3] for c in sync.calls] == [("core", "main", "from"), ("core", "release", "to")]
    assert sync.calls[0][3] == "https://git.example.com/product/core.git"
    assert repos["from"].closed and repos["to"].closed


def test_second_run_skips_reported_features(tmp_path):
    first = Comparator(_settings(tmp_path), _api(), synchronizer=FakeSynchronizer(_repos()))
    first.run()
    previous = tmp_path / "previous.md"
    (tmp_path / "note.md").rename(previous)

    second = Comparator(
        _settings(tmp_path, existing_report_path=str(previous)),
        _api(),
        synchronizer=FakeSynchronizer(_repos()),
    )
    results = second.run()
    assert results["core"].missing == []
    assert results["core"].unknown == []


def test_sync_failure_keeps_previous_note(tmp_path):
    note = tmp_path / "note.md"
    note.write_text("previous note")
    comparator = Comparator(
        _settings(tmp_path), _api(), synchronizer=FakeSynchronizer(_repos(), fail_on="release")
    )
    with pytest.raises(SyncError):
        comparator.run()
    assert note.read_text() == "previous note"


def test_task_sheet_failure_keeps_previous_note(tmp_path):
    note = tmp_path / "note.md"
    note.write_text("previous note")
    planned = tmp_path / "planned.csv"
    planned.write_text("previous planned")
    blocked = tmp_path / "unplanned.xlsx"
    blocked.mkdir()
    comparator = Comparator(
        _settings(tmp_path, planned_tasks_path=str(planned), unplanned_tasks_path=str(blocked)),
        _api(),
        synchronizer=FakeSynchronizer(_repos()),
    )
    with pytest.raises(ReportError):
        comparator.run()
    assert note.read_text() == "previous note"
    assert planned.read_text() == "previous planned"
    assert not [p.name for p in tmp_path.iterdir() if ".tmp" in p.name]


def test_run_writes_task_sheets_with_note(tmp_path):
    planned = tmp_path / "planned.csv"
    unplanned = tmp_path / "unplanned.csv"
    comparator = Comparator(
        _settings(tmp_path, planned_tasks_path=str(planned), unplanned_tasks_path=str(unplanned)),
        _api(),
        synchronizer=FakeSynchronizer(_repos()),
    )
    comparator.run()
    assert (tmp_path / "note.md").exists()
    assert "Export" in unplanned.read_text(encoding="utf-8-sig")
    assert "Crash" in planned.read_text(encoding="utf-8-sig")
    assert sorted(p.name for p in tmp_path.iterdir() if p.is_file()) == ["note.md", "planned.csv", "unplanned.csv"]
