import base64

import pytest
from git import Actor, Commit, Repo

from feature_gap.core.errors import SyncError
from feature_gap.repository.miner import mine_merge_commits
from feature_gap.repository.sync import Credentials, credential_env, sync_branch

BASE_TS = 1_700_000_000


def _commit(repo, tree, message, parents, ts):
    actor = Actor("Dev", "dev@example.com")
    return Commit.create_from_tree(
        repo,
        tree,
        message,
        parent_commits=list(parents),
        head=False,
        author=actor,
        committer=actor,
        author_date=f"{ts} +0000",
        commit_date=f"{ts} +0000",
    )


@pytest.fixture
def origin(tmp_path):
    path = tmp_path / "origin"
    repo = Repo.init(path)
    (path / "README.md").write_text("core\n")
    repo.index.add([str(path / "README.md")])
    tree = repo.index.write_tree()

    base = _commit(repo, tree, "Initial commit", [], BASE_TS)
    feature = _commit(repo, tree, "Add export", [base], BASE_TS + 10)
    merged = _commit(repo, tree, "Merge branch 'export' into 'main'\n\nCloses #12", [base, feature], BASE_TS + 20)
    main = repo.create_head("main", merged)
    repo.head.reference = main
    yield repo, path, base, merged
    repo.close()


def _add_release(repo, base):
    tree = repo.head.commit.tree
    fix = _commit(repo, tree, "Fix crash", [base], BASE_TS + 30)
    merged = _commit(repo, tree, "Merge branch 'fix' into 'release'\n\nCloses #20", [base, fix], BASE_TS + 40)
    repo.create_head("release", merged)
    return merged


def test_clone_then_mine_merges(origin, tmp_path):
    _, path, base, merged = origin
    local = sync_branch("core", "main", tmp_path / "clones" / "core" / "from", str(path))
    try:
        assert local.active_branch.name == "main"
        commits = mine_merge_commits(local, "main", base.hexsha, repository_name="core")
        assert [c.sha for c in commits] == [merged.hexsha]
        assert commits[0].parent_count == 2
        assert commits[0].short_message == "Merge branch 'export' into 'main'"
    finally:
        local.close()


def test_update_checks_out_new_remote_branch(origin, tmp_path):
    repo, path, base, _ = origin
    target = tmp_path / "clones" / "core" / "to"
    sync_branch("core", "main", target, str(path)).close()
    release_merge = _add_release(repo, base)

    local = sync_branch("core", "release", target, str(path))
    try:
        assert local.active_branch.name == "release"
        assert local.active_branch.tracking_branch().name == "origin/release"
        commits = mine_merge_commits(local, "release", base.hexsha, repository_name="core")
        assert [c.sha for c in commits] == [release_merge.hexsha]
    finally:
        local.close()


def test_missing_remote_branch_raises_sync_error(origin, tmp_path):
    _, path, _, _ = origin
    target = tmp_path / "clones" / "core" / "to"
    sync_branch("core", "main", target, str(path)).close()
    with pytest.raises(SyncError, match="release"):
        sync_branch("core", "release", target, str(path))


def test_clone_of_missing_branch_raises_sync_error(origin, tmp_path):
    _, path, _, _ = origin
    with pytest.raises(SyncError):
        sync_branch("core", "release", tmp_path / "clones" / "core" / "to", str(path))


def test_baseline_prefix_is_rejected_on_real_repository(origin, tmp_path):
    _, path, base, _ = origin
    local = sync_branch("core", "main", tmp_path / "clones" / "core" / "from", str(path))
    try:
        assert mine_merge_commits(local, "main", base.hexsha[:10], repository_name="core") == []
    finally:
        local.close()


def test_credentials_stay_out_of_git_config(origin, tmp_path):
    _, path, _, _ = origin
    target = tmp_path / "clones" / "core" / "from"
    creds = Credentials("jdoe", "s3cret-token")
    sync_branch("core", "main", target, str(path), creds).close()
    sync_branch("core", "main", target, str(path), creds).close()
    config = (target / ".git" / "config").read_text()
    assert "s3cret-token" not in config
    assert base64.b64encode(b"jdoe:s3cret-token").decode() not in config
    assert "extraHeader" not in config


def test_credential_env_header():
    env = credential_env(Credentials("j doe", "p@ss"))
    assert env["GIT_CONFIG_COUNT"] == "1"
    assert env["GIT_CONFIG_KEY_0"] == "http.extraHeader"
    assert env["GIT_CONFIG_VALUE_0"] == "Authorization: Basic " + base64.b64encode(b"j doe:p@ss").decode()
    assert credential_env(None) == {}
    assert credential_env(Credentials("jdoe")) == {}
    assert "p@ss" not in repr(Credentials("j doe", "p@ss"))
