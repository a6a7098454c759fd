"""
Integration tests for the git operations API.

Each test registers a repository pointing at a bare remote on disk; the
first git request clones it into the temp workspace root.
"""
import shutil

import pytest

from app.services.git.plumbing import open_repo
from shared.assertions import (
    assert_commit_hash,
    assert_not_found,
    assert_operation_failure,
    assert_operation_success,
    assert_single_current_branch,
    assert_status_code,
)
from shared.factories import branch_create_payload, commit_payload, merge_payload, save_file_payload
from shared.git_helpers import branch_head, commit_to_branch, file_at


async def _save_and_stage(client, git_url, headers, path, content):
    response = await client.put(
        f"{git_url}/files/save", json=save_file_payload(path, content), headers=headers
    )
    assert_status_code(response, 200)
    response = await client.post(f"{git_url}/add", json={"paths": [path]}, headers=headers)
    assert_status_code(response, 200)


async def _commit(client, git_url, headers, path, content, message):
    await _save_and_stage(client, git_url, headers, path, content)
    response = await client.post(f"{git_url}/commit", json=commit_payload(message), headers=headers)
    return assert_operation_success(response)["commit"]


class TestClone:

    async def test_first_request_clones(self, client, auth_headers, git_url, workspace_root, user, repository):
        response = await client.get(f"{git_url}/files", headers=auth_headers)
        assert_status_code(response, 200)
        entries = response.json()
        assert [(e["name"], e["kind"]) for e in entries] == [("src", "directory"), ("README.md", "file")]
        assert (workspace_root / str(user.id) / repository["id"] / ".git").is_dir()

    async def test_later_requests_pull(self, client, auth_headers, git_url, remote_repo):
        await client.get(f"{git_url}/files", headers=auth_headers)
        commit_to_branch(remote_repo, {"CHANGELOG.md": "v1\n"}, "Add changelog")

        response = await client.get(f"{git_url}/files/content", params={"path": "CHANGELOG.md"}, headers=auth_headers)
        assert_status_code(response, 200)
        assert response.json() == {"path": "CHANGELOG.md", "content": "v1\n"}

    async def test_unreachable_remote_is_500(self, client, auth_headers, tmp_path):
        response = await client.post(
            "/api/repositories",
            json={"name": "gone", "url": str(tmp_path / "missing.git")},
            headers=auth_headers,
        )
        repository_id = response.json()["id"]

        response = await client.get(f"/api/git/repositories/{repository_id}/files", headers=auth_headers)
        assert_status_code(response, 500)
        assert "Failed to clone" in response.json()["detail"]


class TestOwnership:

    async def test_other_user_gets_404(self, client, other_auth_headers, git_url, workspace_root, other_user):
        response = await client.get(f"{git_url}/branches", headers=other_auth_headers)
        assert_not_found(response)
        assert not any((workspace_root / str(other_user.id)).iterdir())

    async def test_unknown_repository(self, client, auth_headers):
        response = await client.get("/api/git/repositories/nope/status", headers=auth_headers)
        assert_not_found(response)


class TestCommits:

    async def test_list_commits(self, client, auth_headers, git_url):
        response = await client.get(f"{git_url}/commits", headers=auth_headers)
        assert_status_code(response, 200)
        commits = response.json()
        assert len(commits) == 1
        assert commits[0]["message"] == "Initial commit"
        assert commits[0]["change_stats"] == {"additions": 2, "deletions": 0, "files_touched": 2}
        assert_commit_hash(commits[0]["hash"])

    async def test_limit_validation(self, client, auth_headers, git_url):
        response = await client.get(f"{git_url}/commits", params={"limit": 0}, headers=auth_headers)
        assert_status_code(response, 422)

    async def test_unknown_branch(self, client, auth_headers, git_url):
        response = await client.get(f"{git_url}/commits", params={"branch": "ghost"}, headers=auth_headers)
        assert_not_found(response)


class TestBranches:

    async def test_create_and_list(self, client, auth_headers, git_url):
        response = await client.post(
            f"{git_url}/branches", json=branch_create_payload("feature/login"), headers=auth_headers
        )
        assert_status_code(response, 201)
        assert response.json()["is_current"] is True

        response = await client.get(f"{git_url}/branches", headers=auth_headers)
        branches = response.json()
        assert [b["name"] for b in branches] == ["feature/login", "main"]
        assert assert_single_current_branch(branches)["name"] == "feature/login"

    async def test_create_invalid_name(self, client, auth_headers, git_url):
        response = await client.post(f"{git_url}/branches", json={"name": "bad name"}, headers=auth_headers)
        assert_status_code(response, 400)

    async def test_create_existing(self, client, auth_headers, git_url):
        response = await client.post(f"{git_url}/branches", json={"name": "main"}, headers=auth_headers)
        assert_status_code(response, 400)

    async def test_delete_current_branch_is_400(self, client, auth_headers, git_url):
        response = await client.delete(f"{git_url}/branches/main", headers=auth_headers)
        assert_status_code(response, 400)

        response = await client.get(f"{git_url}/branches", headers=auth_headers)
        assert [b["name"] for b in response.json()] == ["main"]

    async def test_delete_nested_branch_name(self, client, auth_headers, git_url):
        await client.post(f"{git_url}/branches", json=branch_create_payload("feature/x"), headers=auth_headers)
        await client.post(f"{git_url}/branches", json=branch_create_payload("back", "main"), headers=auth_headers)

        response = await client.delete(f"{git_url}/branches/feature/x", headers=auth_headers)
        assert_status_code(response, 200)
        assert response.json() == {"message": "Branch 'feature/x' deleted"}

    async def test_delete_unknown(self, client, auth_headers, git_url):
        response = await client.delete(f"{git_url}/branches/ghost", headers=auth_headers)
        assert_not_found(response)


class TestMerge:

    async def test_fast_forward(self, client, auth_headers, git_url):
        await client.post(f"{git_url}/branches", json=branch_create_payload("feature"), headers=auth_headers)
        head = await _commit(client, git_url, auth_headers, "feature.txt", "f\n", "Feature")

        response = await client.post(f"{git_url}/merge", json=merge_payload("feature"), headers=auth_headers)
        assert_status_code(response, 200)
        assert response.json() == {
            "success": True,
            "message": "Fast-forward merge of feature into main",
            "merge_type": "fast-forward",
            "commit": head,
            "conflicts": [],
        }

    async def test_conflict_is_reported(self, client, auth_headers, git_url):
        await client.post(f"{git_url}/branches", json=branch_create_payload("left"), headers=auth_headers)
        await _commit(client, git_url, auth_headers, "README.md", "left\n", "Left")
        await client.post(f"{git_url}/branches", json=branch_create_payload("right", "main"), headers=auth_headers)
        await _commit(client, git_url, auth_headers, "README.md", "right\n", "Right")

        response = await client.post(f"{git_url}/merge", json=merge_payload("left", "right"), headers=auth_headers)
        assert_status_code(response, 200)
        result = response.json()
        assert result["success"] is False
        assert result["conflicts"] == ["README.md"]

    async def test_merge_into_itself(self, client, auth_headers, git_url):
        response = await client.post(f"{git_url}/merge", json=merge_payload("main", "main"), headers=auth_headers)
        assert_status_code(response, 400)


class TestFiles:

    async def test_list_subdirectory(self, client, auth_headers, git_url):
        response = await client.get(f"{git_url}/files", params={"path": "src"}, headers=auth_headers)
        assert [e["relative_path"] for e in response.json()] == ["src/app.py"]

    @pytest.mark.parametrize("path", ["../../etc/passwd", "/etc/passwd", ".git/config"])
    async def test_traversal_is_400(self, client, auth_headers, git_url, path):
        response = await client.get(f"{git_url}/files/content", params={"path": path}, headers=auth_headers)
        assert_status_code(response, 400)

    async def test_content_of_directory_is_400(self, client, auth_headers, git_url):
        response = await client.get(f"{git_url}/files/content", params={"path": "src"}, headers=auth_headers)
        assert_status_code(response, 400)

    async def test_missing_file_is_404(self, client, auth_headers, git_url):
        response = await client.get(f"{git_url}/files/content", params={"path": "nope.txt"}, headers=auth_headers)
        assert_not_found(response)

    async def test_save_then_read(self, client, auth_headers, git_url):
        response = await client.put(
            f"{git_url}/files/save", json=save_file_payload("docs/guide.md", "# Guide\n"), headers=auth_headers
        )
        assert response.json() == {"message": "Saved docs/guide.md"}

        response = await client.get(f"{git_url}/files/content", params={"path": "docs/guide.md"}, headers=auth_headers)
        assert response.json()["content"] == "# Guide\n"

    async def test_create_directory(self, client, auth_headers, git_url):
        response = await client.post(f"{git_url}/directories", json={"path": "assets/img"}, headers=auth_headers)
        assert_status_code(response, 200)

        response = await client.get(f"{git_url}/files", params={"path": "assets"}, headers=auth_headers)
        assert [e["name"] for e in response.json()] == ["img"]

    async def test_rename_into_new_directory(self, client, auth_headers, git_url):
        response = await client.put(
            f"{git_url}/files/rename",
            json={"old_path": "README.md", "new_path": "docs/README.md"},
            headers=auth_headers,
        )
        assert_status_code(response, 200)

        response = await client.get(f"{git_url}/files/content", params={"path": "docs/README.md"}, headers=auth_headers)
        assert response.json()["content"] == "# Demo\n"

    async def test_rename_missing_is_404(self, client, auth_headers, git_url):
        response = await client.put(
            f"{git_url}/files/rename",
            json={"old_path": "ghost.txt", "new_path": "other.txt"},
            headers=auth_headers,
        )
        assert_not_found(response)

    async def test_delete_directory_then_again(self, client, auth_headers, git_url):
        response = await client.delete(f"{git_url}/files/delete", params={"path": "src"}, headers=auth_headers)
        assert response.json() == {"message": "Deleted src"}

        response = await client.delete(f"{git_url}/files/delete", params={"path": "src"}, headers=auth_headers)
        assert_status_code(response, 200)
        assert response.json() == {"message": "Nothing to delete at src"}


class TestUploads:

    async def test_upload_single(self, client, auth_headers, git_url):
        response = await client.post(
            f"{git_url}/files/upload",
            files={"file": ("notes.md", b"# Notes\n", "text/markdown")},
            data={"path": "docs"},
            headers=auth_headers,
        )
        assert_status_code(response, 200)
        assert response.json() == {"message": "Uploaded docs/notes.md"}

    async def test_upload_multiple(self, client, auth_headers, git_url):
        response = await client.post(
            f"{git_url}/files/upload-multiple",
            files=[
                ("files", ("a.txt", b"a\n", "text/plain")),
                ("files", ("b.json", b"{}", "application/json")),
            ],
            headers=auth_headers,
        )
        assert_status_code(response, 200)

        response = await client.get(f"{git_url}/status", headers=auth_headers)
        assert response.json()["untracked"] == ["a.txt", "b.json"]

    async def test_disallowed_type(self, client, auth_headers, git_url):
        response = await client.post(
            f"{git_url}/files/upload",
            files={"file": ("setup.exe", b"MZ", "application/x-msdownload")},
            headers=auth_headers,
        )
        assert_status_code(response, 400)

    async def test_too_large(self, client, auth_headers, git_url, test_settings):
        test_settings.max_upload_bytes = 4
        response = await client.post(
            f"{git_url}/files/upload",
            files={"file": ("big.txt", b"0123456789", "text/plain")},
            headers=auth_headers,
        )
        assert_status_code(response, 400)
        assert "too large" in response.json()["detail"]

    async def test_too_many(self, client, auth_headers, git_url, test_settings):
        test_settings.max_upload_files = 1
        response = await client.post(
            f"{git_url}/files/upload-multiple",
            files=[
                ("files", ("a.txt", b"a", "text/plain")),
                ("files", ("b.txt", b"b", "text/plain")),
            ],
            headers=auth_headers,
        )
        assert_status_code(response, 400)

    async def test_name_with_path_is_400(self, client, auth_headers, git_url):
        response = await client.post(
            f"{git_url}/files/upload",
            files={"file": ("../evil.txt", b"x", "text/plain")},
            headers=auth_headers,
        )
        assert_status_code(response, 400)


class TestStageCommitPush:

    async def test_round_trip(self, client, auth_headers, git_url, remote_repo):
        await _save_and_stage(client, git_url, auth_headers, "hello.txt", "hello\n")

        response = await client.get(f"{git_url}/status", headers=auth_headers)
        assert response.json()["staged"] == ["hello.txt"]
        assert response.json()["state"] == "staged"

        response = await client.post(f"{git_url}/commit", json=commit_payload("Say hello"), headers=auth_headers)
        commit = assert_operation_success(response)["commit"]
        assert_commit_hash(commit)

        response = await client.get(f"{git_url}/status", headers=auth_headers)
        assert response.json()["ahead_count"] == 1
        assert response.json()["state"] == "committed"

        response = await client.post(f"{git_url}/push", headers=auth_headers)
        result = assert_operation_success(response)
        assert result["pushed"] is True
        assert result["commit"] == commit
        assert branch_head(remote_repo).decode() == commit
        assert file_at(remote_repo, "hello.txt") == b"hello\n"

        response = await client.get(f"{git_url}/status", headers=auth_headers)
        assert response.json()["state"] == "synced"

    async def test_commit_with_nothing_staged(self, client, auth_headers, git_url):
        await client.put(f"{git_url}/files/save", json=save_file_payload("README.md", "edit\n"), headers=auth_headers)
        response = await client.post(f"{git_url}/commit", json=commit_payload("Nothing"), headers=auth_headers)
        result = assert_operation_failure(response, "nothing staged")
        assert result["commit"] is None

    async def test_commit_empty_message_is_400(self, client, auth_headers, git_url):
        await _save_and_stage(client, git_url, auth_headers, "x.txt", "x\n")
        response = await client.post(f"{git_url}/commit", json=commit_payload(""), headers=auth_headers)
        assert_status_code(response, 400)

    async def test_add_empty_list_is_422(self, client, auth_headers, git_url):
        response = await client.post(f"{git_url}/add", json={"paths": []}, headers=auth_headers)
        assert_status_code(response, 422)

    async def test_add_unknown_path_is_500(self, client, auth_headers, git_url):
        response = await client.post(f"{git_url}/add", json={"paths": ["ghost.txt"]}, headers=auth_headers)
        assert_status_code(response, 500)
        assert "did not match" in response.json()["detail"]

    async def test_push_after_remote_moved(self, client, auth_headers, git_url, remote_repo):
        await _commit(client, git_url, auth_headers, "local.txt", "l\n", "Local")
        # The remote moves after the pull that precedes the push
        commit_to_branch(remote_repo, {"upstream.txt": "u\n"}, "Upstream")
        response = await client.post(f"{git_url}/push", headers=auth_headers)

        # The pull before the push merges upstream, so the push goes through
        result = assert_operation_success(response)
        assert file_at(remote_repo, "upstream.txt") == b"u\n"
        assert file_at(remote_repo, "local.txt") == b"l\n"
        assert result["commit"] == branch_head(remote_repo).decode()

    async def test_push_to_unreachable_remote(self, client, auth_headers, git_url, remote_repo):
        await _commit(client, git_url, auth_headers, "a.txt", "a\n", "Add a")
        shutil.rmtree(remote_repo)

        response = await client.post(f"{git_url}/push", headers=auth_headers)
        result = assert_operation_failure(response, "push failed")
        assert result["pushed"] is False
        assert result["error"]

    async def test_push_without_remote(self, client, auth_headers, git_url, workspace_root, user, repository):
        await _commit(client, git_url, auth_headers, "a.txt", "a\n", "Add a")
        with open_repo(workspace_root / str(user.id) / repository["id"]) as repo:
            config = repo.get_config()
            del config[(b"remote", b"origin")]
            config.write_to_path()

        response = await client.post(f"{git_url}/push", headers=auth_headers)
        result = assert_operation_failure(response, "no remote")
        assert result["pushed"] is False


class TestCounters:

    async def test_commit_updates_repository_counters(self, client, auth_headers, git_url, repository):
        await _commit(client, git_url, auth_headers, "a.txt", "a\n", "Add a")

        response = await client.get(f"/api/repositories/{repository['id']}", headers=auth_headers)
        body = response.json()
        assert body["commit_count"] == 2
        assert body["branch_count"] == 1

    async def test_reads_do_not_update_counters(self, client, auth_headers, git_url, repository):
        await client.get(f"{git_url}/status", headers=auth_headers)
        response = await client.get(f"/api/repositories/{repository['id']}", headers=auth_headers)
        assert response.json()["commit_count"] == 0


class TestStats:

    async def test_stats(self, client, auth_headers, git_url):
        await client.post(f"{git_url}/branches", json=branch_create_payload("dev"), headers=auth_headers)
        await _commit(client, git_url, auth_headers, "a.txt", "a\n", "Add a")

        response = await client.get(f"{git_url}/stats", headers=auth_headers)
        assert_status_code(response, 200)
        stats = response.json()
        assert stats["total_commits"] == 2
        assert stats["total_branches"] == 2
        assert stats["active_branches"] == 1
        assert stats["latest_commit"]["message"] == "Add a"
        assert {c["email"] for c in stats["contributors"]} == {"alice@gitdesk.local", "remote@example.com"}

    async def test_status_lists_changes(self, client, auth_headers, git_url):
        await client.put(f"{git_url}/files/save", json=save_file_payload("README.md", "changed\n"), headers=auth_headers)
        await client.put(f"{git_url}/files/save", json=save_file_payload("new.txt", "n\n"), headers=auth_headers)

        response = await client.get(f"{git_url}/status", headers=auth_headers)
        status = response.json()
        assert status["current_branch"] == "main"
        assert status["tracking_ref"] == "origin/main"
        assert status["modified"] == ["README.md"]
        assert status["untracked"] == ["new.txt"]
        assert status["state"] == "modified"
