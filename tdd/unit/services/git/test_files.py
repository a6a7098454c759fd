"""
Unit tests for working copy file operations.
"""
import pytest

from app.services.git.errors import InvalidInput, PathNotFound, PathOutsideWorkspace
from app.services.git.files import FileOperations
from app.services.git.results import UploadedFile


@pytest.fixture
def files():
    return FileOperations()


class TestUpload:

    def test_upload_into_root(self, files, working_copy):
        rel = files.upload_file(working_copy, UploadedFile("notes.txt", b"hi\n"))
        assert rel == "notes.txt"
        assert (working_copy / "notes.txt").read_bytes() == b"hi\n"

    def test_upload_creates_target_dir(self, files, working_copy):
        rel = files.upload_file(working_copy, UploadedFile("logo.png", b"\x89PNG"), "assets/img")
        assert rel == "assets/img/logo.png"
        assert (working_copy / "assets" / "img" / "logo.png").read_bytes() == b"\x89PNG"

    def test_last_write_wins(self, files, working_copy):
        files.upload_file(working_copy, UploadedFile("README.md", b"replaced\n"))
        assert (working_copy / "README.md").read_bytes() == b"replaced\n"

    @pytest.mark.parametrize("name", ["", ".", "..", "../evil.txt", "a/b.txt", "a\\b.txt", ".git"])
    def test_rejects_names_with_paths(self, files, working_copy, name):
        with pytest.raises(InvalidInput):
            files.upload_file(working_copy, UploadedFile(name, b"x"))

    def test_rejects_escaping_target_dir(self, files, working_copy):
        with pytest.raises(PathOutsideWorkspace):
            files.upload_file(working_copy, UploadedFile("a.txt", b"x"), "../outside")

    def test_rejects_directory_collision(self, files, working_copy):
        with pytest.raises(InvalidInput):
            files.upload_file(working_copy, UploadedFile("src", b"x"))

    @pytest.mark.parametrize("target_dir", ["README.md", "README.md/nested"])
    def test_rejects_file_as_target_dir(self, files, working_copy, target_dir):
        with pytest.raises(InvalidInput):
            files.upload_file(working_copy, UploadedFile("a.txt", b"x"), target_dir)
        assert (working_copy / "README.md").read_bytes() == b"# Demo\n"

    def test_multiple_validates_before_writing(self, files, working_copy):
        batch = [UploadedFile("ok.txt", b"1"), UploadedFile("../bad.txt", b"2")]
        with pytest.raises(InvalidInput):
            files.upload_files(working_copy, batch)
        assert not (working_copy / "ok.txt").exists()

    def test_multiple(self, files, working_copy):
        batch = [UploadedFile("a.txt", b"a"), UploadedFile("b.txt", b"b")]
        assert files.upload_files(working_copy, batch, "docs") == ["docs/a.txt", "docs/b.txt"]


class TestSave:

    def test_save_creates_parents(self, files, working_copy):
        assert files.save_file(working_copy, "docs/guide/intro.md", "# Intro\n") == "docs/guide/intro.md"
        assert (working_copy / "docs" / "guide" / "intro.md").read_text() == "# Intro\n"

    def test_save_overwrites(self, files, working_copy):
        files.save_file(working_copy, "README.md", "new\n")
        assert (working_copy / "README.md").read_text() == "new\n"

    def test_save_over_directory(self, files, working_copy):
        with pytest.raises(InvalidInput):
            files.save_file(working_copy, "src", "x")

    def test_save_root(self, files, working_copy):
        with pytest.raises(InvalidInput):
            files.save_file(working_copy, "", "x")

    def test_save_into_git_dir(self, files, working_copy):
        with pytest.raises(PathOutsideWorkspace):
            files.save_file(working_copy, ".git/hooks/pre-commit", "#!/bin/sh\n")


class TestDirectories:

    def test_create_nested(self, files, working_copy):
        assert files.create_directory(working_copy, "a/b/c") == "a/b/c"
        assert (working_copy / "a" / "b" / "c").is_dir()

    def test_create_existing_is_noop(self, files, working_copy):
        files.create_directory(working_copy, "src")
        assert (working_copy / "src" / "app.py").exists()

    def test_create_over_file(self, files, working_copy):
        with pytest.raises(InvalidInput):
            files.create_directory(working_copy, "README.md")


class TestDelete:

    def test_delete_file(self, files, working_copy):
        assert files.delete_file(working_copy, "README.md") is True
        assert not (working_copy / "README.md").exists()

    def test_delete_directory_recursively(self, files, working_copy):
        assert files.delete_file(working_copy, "src") is True
        assert not (working_copy / "src").exists()

    def test_delete_missing_is_idempotent(self, files, working_copy):
        assert files.delete_file(working_copy, "ghost.txt") is False

    def test_delete_root(self, files, working_copy):
        with pytest.raises(InvalidInput):
            files.delete_file(working_copy, ".")
        assert (working_copy / ".git").is_dir()

    def test_delete_outside(self, files, working_copy):
        with pytest.raises(PathOutsideWorkspace):
            files.delete_file(working_copy, "../../outside")


class TestRename:

    def test_rename_into_new_directory(self, files, working_copy):
        assert files.rename_file(working_copy, "README.md", "docs/README.md") == "docs/README.md"
        assert not (working_copy / "README.md").exists()
        assert (working_copy / "docs" / "README.md").read_text() == "# Demo\n"

    def test_rename_directory(self, files, working_copy):
        files.rename_file(working_copy, "src", "lib")
        assert (working_copy / "lib" / "app.py").exists()

    def test_rename_missing(self, files, working_copy):
        with pytest.raises(PathNotFound):
            files.rename_file(working_copy, "ghost.txt", "other.txt")

    def test_rename_onto_existing(self, files, working_copy):
        with pytest.raises(InvalidInput):
            files.rename_file(working_copy, "README.md", "src/app.py")
        assert (working_copy / "README.md").exists()

    def test_rename_out_of_workspace(self, files, working_copy):
        with pytest.raises(PathOutsideWorkspace):
            files.rename_file(working_copy, "README.md", "../README.md")
