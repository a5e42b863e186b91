"""Tests for the Fleet command handlers"""
from unittest.mock import Mock

import pytest

from fell.config import Config
from fell.core import Fleet
from fell.exceptions import ConfigurationError, DivergedHistoryError, RepoAccessError
from fell.models.repository import DefaultBranchRelation
from fell.services.catalog import RepositoryCatalog
from fell.services.github_service import GitHubService

from conftest import make_ref


@pytest.fixture
def repos_by_name(workspace_repos):
    return {repo.name: repo for repo in workspace_repos}


@pytest.fixture
def make_fleet(mock_config, workspace_catalog, fake_backend):
    def _make(github_service=None, **overrides):
        config = dict(mock_config, **overrides)
        return Fleet(config, backend=fake_backend, catalog=workspace_catalog,
                     github_service=github_service)
    return _make


class TestStatusAndCommit:
    """catalog = {A (clean), B (dirty), C (dirty)}"""

    @pytest.fixture(autouse=True)
    def setup_repos(self, fake_backend, repos_by_name):
        fake_backend.add(repos_by_name["A"])
        fake_backend.add(repos_by_name["B"], dirty=True)
        fake_backend.add(repos_by_name["C"], dirty=True)

    def test_status(self, make_fleet):
        summary = make_fleet().status()
        assert summary.groups["clean"].names == ["A"]
        assert summary.groups["dirty"].names == ["B", "C"]
        assert summary.flagged.names == ["B", "C"]
        assert summary.exit_code == 0

    def test_commit_only_dirty_repos(self, make_fleet, fake_backend):
        summary = make_fleet().commit("wip")

        assert [o.repo.name for o in summary.result] == ["B", "C"]
        assert all(o.ok for o in summary.result)
        assert fake_backend.commits == {"B": ["wip"], "C": ["wip"]}
        assert ("commit_all", "A") not in fake_backend.calls
        assert summary.skipped.names == ["A"]
        assert summary.headline == '2 repos added new commit "wip"'

    def test_commit_requires_message(self, make_fleet):
        with pytest.raises(ValueError):
            make_fleet().commit("  ")

    def test_status_with_scope_and_exclude(self, make_fleet):
        summary = make_fleet(exclude=["B"]).status()
        assert summary.groups["dirty"].names == ["C"]
        summary = make_fleet(scope="A").status()
        assert summary.groups["clean"].names == ["A"]
        assert len(summary.groups["dirty"]) == 0

    def test_sync_only_clean_repos(self, make_fleet, fake_backend):
        summary = make_fleet().sync()
        assert [o.repo.name for o in summary.result] == ["A"]
        assert summary.skipped.names == ["B", "C"]
        assert summary.headline == "1 repos synced"


class TestBranch:
    """catalog = {A (feature), B (master)}"""

    def test_branch_report(self, make_fleet, fake_backend, repos_by_name):
        fake_backend.add(repos_by_name["A"], branch="feature")
        fake_backend.add(repos_by_name["B"], branch="master")

        summary = make_fleet(exclude=["C"]).branch()

        assert {branch: repos.names for branch, repos in summary.groups.items()} == {
            "feature": ["A"],
            "master": ["B"],
        }
        assert summary.flagged.names == ["A"]
        assert summary.failed is False

    def test_unreadable_repo_fails_command(self, make_fleet, fake_backend, repos_by_name):
        fake_backend.add(repos_by_name["A"])
        fake_backend.add(repos_by_name["B"])
        # C was never added: the fake backend cannot open it

        summary = make_fleet().branch()

        assert summary.groups["master"].names == ["A", "B"]
        assert [o.repo.name for o in summary.result.failed] == ["C"]
        assert summary.exit_code == 1


class TestSync:
    """Test partial failure reporting for sync."""

    def test_diverged_repo_reported(self, make_fleet, fake_backend, repos_by_name):
        for name in "ABC":
            fake_backend.add(repos_by_name[name])
        fake_backend.diverged.add("B")

        summary = make_fleet().sync()

        assert [o.ok for o in summary.result] == [True, False, True]
        assert isinstance(summary.result[1].error, DivergedHistoryError)
        assert summary.headline == "2 repos synced"
        assert summary.exit_code == 1


class TestPush:
    """Test push target selection."""

    @pytest.fixture(autouse=True)
    def setup_repos(self, fake_backend, repos_by_name):
        fake_backend.add(repos_by_name["A"], branch="feature", relation=DefaultBranchRelation.AHEAD,
                         url="git@github.com:org/A.git")
        fake_backend.add(repos_by_name["B"], branch="master", relation=DefaultBranchRelation.EQUAL)
        fake_backend.add(repos_by_name["C"], branch="feature", relation=DefaultBranchRelation.DIVERGED)

    def test_push_current_branches(self, make_fleet, fake_backend):
        summary = make_fleet().push()
        assert sorted(fake_backend.pushed) == [("A", "feature", False), ("B", "master", False)]
        assert summary.skipped.names == ["C"]
        assert summary.exit_code == 0

    def test_push_named_branch(self, make_fleet, fake_backend):
        summary = make_fleet().push(branch="feature", force=True)
        assert fake_backend.pushed == [("A", "feature", True)]
        assert summary.skipped.names == ["B", "C"]
        assert "(forced)" in summary.headline

    def test_push_failure_isolated(self, make_fleet, fake_backend):
        fake_backend.relations["C"] = DefaultBranchRelation.AHEAD
        original_push = fake_backend.push

        def flaky_push(repo, branch, force=False, remote=None):
            if repo.name == "A":
                raise RuntimeError("connection reset")
            return original_push(repo, branch, force, remote)

        fake_backend.push = flaky_push
        summary = make_fleet().push(branch="feature")

        assert fake_backend.pushed == [("C", "feature", False)]
        assert [o.repo.name for o in summary.result.failed] == ["A"]
        assert summary.headline == "1 repos pushed, 1 failed"

    def test_push_opens_pull_requests(self, make_fleet, fake_backend):
        github = Mock(spec=GitHubService)
        github.open_pull_request.return_value = "https://github.com/org/A/pull/1"

        summary = make_fleet(github_service=github).push(open_pr=True)

        github.open_pull_request.assert_called_once_with("org/A", "feature", "master", "Work on feature")
        assert summary.notes == ["A: https://github.com/org/A/pull/1"]


class TestCheckoutAndDelete:
    """Test branch switching and deletion."""

    @pytest.fixture(autouse=True)
    def setup_repos(self, fake_backend, repos_by_name):
        fake_backend.add(repos_by_name["A"], branch="master")
        fake_backend.add(repos_by_name["B"], branch="feature")
        fake_backend.add(repos_by_name["C"], branch="master")

    def test_checkout_existing(self, make_fleet, fake_backend):
        summary = make_fleet().checkout("feature")
        assert [o.repo.name for o in summary.result.succeeded] == ["B"]
        assert [o.repo.name for o in summary.result.failed] == ["A", "C"]

    def test_checkout_new(self, make_fleet, fake_backend):
        summary = make_fleet().checkout("release", new_branch=True)
        assert summary.failed is False
        assert set(fake_backend.branches.values()) == {"release"}
        assert summary.headline == "3 repos switched to new branch <release>"

    def test_delete_only_where_branch_exists(self, make_fleet, fake_backend):
        fake_backend.local_branches["A"].add("feature")
        fake_backend.local_branches["C"].add("feature")

        summary = make_fleet().delete("feature")

        assert [o.repo.name for o in summary.result.succeeded] == ["A", "C"]
        # B has the branch checked out
        assert [o.repo.name for o in summary.result.failed] == ["B"]
        assert "feature" not in fake_backend.local_branches["A"]

    def test_delete_skips_repos_without_branch(self, make_fleet, fake_backend):
        summary = make_fleet().delete("nothing")
        assert len(summary.result) == 0
        assert summary.skipped.names == ["A", "B", "C"]
        assert not any(call[0] == "delete_branch" for call in fake_backend.calls)


class TestClone:
    """Test cloning from the catalog and from a URL."""

    def test_clone_missing_catalog_entries(self, mock_config, fake_backend, temp_dir):
        (temp_dir / "present").mkdir()
        catalog_file = temp_dir / "repos.txt"
        catalog_file.write_text(
            "present\nabsent git@github.com:org/absent.git\nnourl\n"
        )
        fleet = Fleet(mock_config, backend=fake_backend, catalog=RepositoryCatalog(catalog_file))

        summary = fleet.clone()

        assert fake_backend.cloned == [("absent", "git@github.com:org/absent.git")]
        assert [o.repo.name for o in summary.result.failed] == ["nourl"]
        assert summary.skipped.names == ["present"]

    def test_clone_single_url(self, make_fleet, fake_backend, temp_dir):
        summary = make_fleet().clone(
            url="git@github.com:org/journal.git", destination=str(temp_dir / "en" / "{name}")
        )
        assert fake_backend.cloned == [("journal", "git@github.com:org/journal.git")]
        assert summary.result[0].repo.path == (temp_dir / "en" / "journal").resolve()

    def test_clone_destination_keeps_other_braces(self, make_fleet, fake_backend, temp_dir):
        summary = make_fleet().clone(
            url="git@github.com:org/journal.git", destination=str(temp_dir / "{owner}" / "{}" / "{name}")
        )
        assert summary.failed is False
        assert summary.result[0].repo.path == (temp_dir / "{owner}" / "{}" / "journal").resolve()


class TestWorkflows:
    """Test CI workflow status reporting."""

    def make_github(self, conclusions):
        client = Mock()

        def get_repo(full_name):
            gh_repo = Mock()
            run = Mock(status="completed", conclusion=conclusions[full_name],
                       html_url=f"https://github.com/{full_name}/actions/runs/1")
            run.name = "CI"
            gh_repo.get_workflow_runs.return_value = [run] if conclusions[full_name] else []
            return gh_repo

        client.get_repo.side_effect = get_repo
        return GitHubService(token="test", client=client)

    def test_workflows_grouped_by_state(self, make_fleet, fake_backend, repos_by_name):
        for name in "ABC":
            fake_backend.add(repos_by_name[name], url=f"https://github.com/org/{name}.git")
        github = self.make_github({"org/A": "success", "org/B": "failure", "org/C": None})

        summary = make_fleet(github_service=github).workflows()

        assert {state: repos.names for state, repos in summary.groups.items()} == {
            "success": ["A"],
            "failure": ["B"],
            "no runs": ["C"],
        }
        assert summary.flagged.names == ["B", "C"]
        assert summary.headline == "1 of 3 repos passing"

    def test_non_github_remote_fails_repo(self, make_fleet, fake_backend, repos_by_name):
        for name in "ABC":
            fake_backend.add(repos_by_name[name], url=f"https://github.com/org/{name}.git")
        fake_backend.remote_urls["C"] = "https://gitlab.com/org/C.git"
        github = self.make_github({"org/A": "success", "org/B": "success"})

        summary = make_fleet(github_service=github).workflows()

        assert [o.repo.name for o in summary.result.failed] == ["C"]

    def test_token_required(self, make_fleet, fake_backend, monkeypatch):
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with pytest.raises(ConfigurationError, match="token"):
            make_fleet(github_token=None).workflows()
        assert fake_backend.calls == []


class TestConfigurationErrors:
    """Catalog problems abort before any repository is touched."""

    def test_missing_catalog_is_fatal(self, fake_backend, temp_dir):
        fleet = Fleet(Config(catalog_file=str(temp_dir / "missing.txt")), backend=fake_backend)
        with pytest.raises(ConfigurationError):
            fleet.status()
        assert fake_backend.calls == []

    def test_malformed_catalog_is_fatal(self, fake_backend, temp_dir):
        catalog_file = temp_dir / "repos.txt"
        catalog_file.write_text("a b c\n")
        fleet = Fleet(Config(catalog_file=str(catalog_file)), backend=fake_backend)
        with pytest.raises(ConfigurationError, match="line 1"):
            fleet.commit("wip")
        assert fake_backend.calls == []


class TestVanishedRepositories:
    """Catalog entries whose directory is gone are reported, not dropped."""

    @pytest.fixture
    def catalog(self, temp_dir):
        (temp_dir / "A").mkdir()
        catalog_file = temp_dir / "repos.txt"
        catalog_file.write_text("A\nGone\n")
        return RepositoryCatalog(catalog_file)

    def test_status_fails_missing_entry(self, mock_config, fake_backend, catalog, temp_dir):
        fake_backend.add(make_ref(temp_dir / "A"))
        fleet = Fleet(mock_config, backend=fake_backend, catalog=catalog)

        summary = fleet.status()

        assert summary.groups["clean"].names == ["A"]
        assert [o.repo.name for o in summary.result.failed] == ["Gone"]
        assert isinstance(summary.result.failed[0].error, RepoAccessError)
        assert summary.exit_code == 1

    def test_checkout_fails_missing_entry(self, mock_config, fake_backend, catalog, temp_dir):
        fake_backend.add(make_ref(temp_dir / "A"))
        fleet = Fleet(mock_config, backend=fake_backend, catalog=catalog)

        summary = fleet.checkout("release", new_branch=True)

        assert [o.repo.name for o in summary.result.succeeded] == ["A"]
        assert [o.repo.name for o in summary.result.failed] == ["Gone"]
        assert summary.exit_code == 1
