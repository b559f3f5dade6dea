"""End-to-end tests for the sync engine."""

import os
import stat
import sys

import pytest

import treesync
from treesync.core import CopyEvents, CopyRequest, SyncEngine, SyncResult
from treesync.fs import primitives


def write(path, content="", mode=0o644):
    """Create a file with *content* and *mode*, making parents as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    os.chmod(path, mode)
    return path


def snapshot(root):
    """Describe every entry below *root* by kind, mode, mtime and content."""
    entries = {}
    for dirpath, dirnames, filenames in os.walk(root):
        for name in dirnames + filenames:
            loc = os.path.join(dirpath, name)
            st = os.lstat(loc)
            relative = os.path.relpath(loc, root)
            if stat.S_ISLNK(st.st_mode):
                entries[relative] = ("link", os.readlink(loc))
            elif stat.S_ISDIR(st.st_mode):
                entries[relative] = ("dir", stat.S_IMODE(st.st_mode))
            else:
                with open(loc, "rb") as f:
                    content = f.read()
                entries[relative] = (
                    "file", stat.S_IMODE(st.st_mode), st.st_mtime_ns, content
                )
    return entries


def build_source(root):
    """Create a small tree with nested directories, an executable and a link."""
    write(root / "a.txt", "hi")
    write(root / "sub" / "b.txt", "there")
    write(root / "sub" / "deeper" / "c.bin", "\x00\x01\x02")
    write(root / "bin" / "tool", "#!/bin/sh\n", mode=0o755)
    if sys.platform != "win32":
        os.symlink("sub/b.txt", root / "link-to-b")
        os.symlink("missing-target", root / "dangling")


class TestSyncEngine:
    """Test full synchronization runs."""

    def setup_method(self):
        """Set up test fixtures."""
        self.engine = SyncEngine()

    @pytest.mark.asyncio
    async def test_example_tree(self, tmp_path):
        """Test the two-file example end to end."""
        src = tmp_path / "S"
        dest = tmp_path / "D"
        write(src / "a.txt", "hi")
        write(src / "sub" / "b.txt", "there")

        result = await self.engine.copy(str(src), str(dest))

        assert isinstance(result, SyncResult)
        assert result.files_copied == 2
        assert result.symlinks_created == 0
        assert (dest / "a.txt").read_text() == "hi"
        assert (dest / "sub" / "b.txt").read_text() == "there"

    @pytest.mark.asyncio
    async def test_destination_mirrors_source(self, tmp_path):
        """Test that the destination ends up identical to the source."""
        src = tmp_path / "src"
        dest = tmp_path / "dest"
        build_source(src)

        await self.engine.copy(str(src), str(dest))

        assert snapshot(dest) == snapshot(src)

    @pytest.mark.asyncio
    async def test_second_run_is_a_no_op(self, tmp_path):
        """Test that repeating a sync plans nothing and changes nothing."""
        src = tmp_path / "src"
        dest = tmp_path / "dest"
        build_source(src)
        await self.engine.copy(str(src), str(dest))
        before = snapshot(dest)

        result = await self.engine.copy(str(src), str(dest))

        assert result.actions_planned == 0
        assert result.removed == []
        assert not result.changed
        assert snapshot(dest) == before

    @pytest.mark.asyncio
    async def test_timestamps_preserved(self, tmp_path):
        """Test that copied files keep the source atime and mtime."""
        src_file = write(tmp_path / "src" / "f.txt", "content")
        os.utime(src_file, ns=(1_234_567_890_123_456_789, 1_111_111_111_222_222_222))
        before = os.stat(src_file)

        await self.engine.copy(str(tmp_path / "src"), str(tmp_path / "dest"))

        dest_stat = os.stat(tmp_path / "dest" / "f.txt")
        assert dest_stat.st_mtime_ns == before.st_mtime_ns
        assert dest_stat.st_atime_ns == before.st_atime_ns

    @pytest.mark.asyncio
    async def test_extraneous_entries_removed(self, tmp_path):
        """Test that destination-only files and directories disappear."""
        src = tmp_path / "src"
        dest = tmp_path / "dest"
        write(src / "keep.txt", "k")
        write(dest / "stale.txt", "s")
        write(dest / "old" / "c" / "g.txt", "g")

        result = await self.engine.copy(str(src), str(dest))

        assert sorted(os.listdir(dest)) == ["keep.txt"]
        assert str(dest / "stale.txt") in result.removed
        assert str(dest / "old") in result.removed

    @pytest.mark.asyncio
    async def test_unchanged_file_not_read(self, tmp_path, monkeypatch):
        """Test that an unchanged file is never copied again."""
        src = tmp_path / "src"
        dest = tmp_path / "dest"
        write(src / "same.txt", "same")
        write(src / "changed.txt", "v1")
        await self.engine.copy(str(src), str(dest))
        write(src / "changed.txt", "version two")

        copied = []
        real_copy_file = primitives.copy_file

        async def recording_copy_file(src_path, dest_path, mode, chunk_size):
            copied.append(src_path)
            await real_copy_file(src_path, dest_path, mode, chunk_size)

        monkeypatch.setattr(primitives, "copy_file", recording_copy_file)

        result = await self.engine.copy(str(src), str(dest))

        assert copied == [str(src / "changed.txt")]
        assert result.files_copied == 1
        assert (dest / "changed.txt").read_text() == "version two"

    @pytest.mark.asyncio
    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")
    async def test_kind_change_symlink_to_file(self, tmp_path):
        """Test that a destination symlink is replaced by a regular file."""
        src = tmp_path / "src"
        dest = tmp_path / "dest"
        write(src / "x", "regular")
        dest.mkdir()
        os.symlink("elsewhere", dest / "x")

        await self.engine.copy(str(src), str(dest))

        assert not os.path.islink(dest / "x")
        assert (dest / "x").read_text() == "regular"

    @pytest.mark.asyncio
    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")
    async def test_kind_change_file_to_symlink(self, tmp_path):
        """Test that a destination file is replaced by a symlink."""
        src = tmp_path / "src"
        dest = tmp_path / "dest"
        write(src / "target.txt", "t")
        os.symlink("target.txt", src / "x")
        write(dest / "x", "was a file")

        await self.engine.copy(str(src), str(dest))

        assert os.readlink(dest / "x") == "target.txt"
        assert (dest / "x").read_text() == "t"

    @pytest.mark.asyncio
    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")
    async def test_relative_symlink_resolves_to_copied_file(self, tmp_path):
        """Test that a link to a file copied in the same call resolves."""
        src = tmp_path / "src"
        dest = tmp_path / "dest"
        write(src / "data" / "payload.txt", "payload")
        os.symlink("data/payload.txt", src / "current")

        await self.engine.copy(str(src), str(dest))

        assert os.readlink(dest / "current") == "data/payload.txt"
        assert (dest / "current").read_text() == "payload"

    @pytest.mark.asyncio
    async def test_single_file_source(self, tmp_path):
        """Test synchronising a lone file."""
        src_file = write(tmp_path / "one.txt", "single", mode=0o600)

        result = await self.engine.copy(str(src_file), str(tmp_path / "copy.txt"))

        assert result.files_copied == 1
        assert (tmp_path / "copy.txt").read_text() == "single"
        assert stat.S_IMODE(os.stat(tmp_path / "copy.txt").st_mode) == 0o600

    @pytest.mark.asyncio
    async def test_copy_bulk_with_events(self, tmp_path):
        """Test several requests in one call with progress reporting."""
        write(tmp_path / "one" / "a.txt", "a")
        write(tmp_path / "two" / "b.txt", "b")
        write(tmp_path / "two" / "c.txt", "c")
        started = []
        progress = []
        requests = [
            CopyRequest(str(tmp_path / "one"), str(tmp_path / "out1")),
            CopyRequest(str(tmp_path / "two"), str(tmp_path / "out2")),
        ]

        result = await self.engine.copy_bulk(
            requests,
            CopyEvents(on_start=started.append, on_progress=progress.append)
        )

        assert requests == []
        assert result.files_copied == 3
        assert started == [3]
        assert len(progress) == 3
        assert result.duration is not None

    @pytest.mark.asyncio
    async def test_module_level_helpers(self, tmp_path):
        """Test the default-engine convenience functions."""
        write(tmp_path / "src" / "a.txt", "a")

        first = await treesync.copy(str(tmp_path / "src"), str(tmp_path / "dest"))
        second = await treesync.copy_bulk(
            [CopyRequest(str(tmp_path / "src"), str(tmp_path / "dest"))]
        )

        assert first.changed
        assert not second.changed


posix_only = pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
unprivileged_only = pytest.mark.skipif(
    not hasattr(os, "geteuid") or os.geteuid() == 0,
    reason="root ignores permission bits"
)


@posix_only
class TestPermissionBits:
    """Test trees whose permission bits forbid writing."""

    def setup_method(self):
        """Set up test fixtures."""
        self.engine = SyncEngine()

    @pytest.mark.asyncio
    async def test_read_only_directory_is_filled(self, tmp_path):
        """Test that a read-only source directory is copied with its contents."""
        src = tmp_path / "src"
        dest = tmp_path / "dest"
        write(src / "ro" / "f.txt", "x")
        os.chmod(src / "ro", 0o555)

        first = await self.engine.copy(str(src), str(dest))
        second = await self.engine.copy(str(src), str(dest))

        assert first.files_copied == 1
        assert (dest / "ro" / "f.txt").read_text() == "x"
        assert stat.S_IMODE(os.stat(dest / "ro").st_mode) == 0o555
        assert second.actions_planned == 0
        assert stat.S_IMODE(os.stat(dest / "ro").st_mode) == 0o555
        assert snapshot(dest) == snapshot(src)

    @pytest.mark.asyncio
    async def test_change_inside_read_only_directory(self, tmp_path):
        """Test that a changed file below a read-only directory is updated."""
        src = tmp_path / "src"
        dest = tmp_path / "dest"
        write(src / "ro" / "f.txt", "old")
        os.chmod(src / "ro", 0o555)
        await self.engine.copy(str(src), str(dest))

        os.chmod(src / "ro", 0o755)
        write(src / "ro" / "f.txt", "newer")
        os.chmod(src / "ro", 0o555)
        result = await self.engine.copy(str(src), str(dest))

        assert result.files_copied == 1
        assert (dest / "ro" / "f.txt").read_text() == "newer"
        assert stat.S_IMODE(os.stat(dest / "ro").st_mode) == 0o555

    @pytest.mark.asyncio
    async def test_read_only_file_is_updated(self, tmp_path):
        """Test that a read-only destination file receives new contents."""
        src = tmp_path / "src"
        dest = tmp_path / "dest"
        src_file = write(src / "f.txt", "old", mode=0o444)
        await self.engine.copy(str(src), str(dest))

        os.chmod(src_file, 0o644)
        src_file.write_text("changed")
        os.chmod(src_file, 0o444)
        result = await self.engine.copy(str(src), str(dest))

        assert result.files_copied == 1
        assert (dest / "f.txt").read_text() == "changed"
        assert stat.S_IMODE(os.stat(dest / "f.txt").st_mode) == 0o444

    @pytest.mark.asyncio
    async def test_read_only_directory_made_writable(self, tmp_path):
        """Test that a directory whose source mode loosens is rebuilt with its contents."""
        src = tmp_path / "src"
        dest = tmp_path / "dest"
        write(src / "ro" / "f.txt", "x")
        os.chmod(src / "ro", 0o555)
        await self.engine.copy(str(src), str(dest))

        os.chmod(src / "ro", 0o755)
        await self.engine.copy(str(src), str(dest))

        assert stat.S_IMODE(os.stat(dest / "ro").st_mode) == 0o755
        assert (dest / "ro" / "f.txt").read_text() == "x"

    @pytest.mark.asyncio
    @unprivileged_only
    async def test_read_only_directory_is_locked_afterwards(self, tmp_path):
        """Test that the restored mode really forbids new entries for the owner."""
        write(tmp_path / "src" / "ro" / "f.txt", "x")
        os.chmod(tmp_path / "src" / "ro", 0o555)

        await self.engine.copy(str(tmp_path / "src"), str(tmp_path / "dest"))

        with pytest.raises(PermissionError):
            (tmp_path / "dest" / "ro" / "new.txt").write_text("y")
        assert (tmp_path / "dest" / "ro" / "f.txt").read_text() == "x"

    @pytest.mark.asyncio
    @unprivileged_only
    async def test_extraneous_read_only_directory_removed(self, tmp_path):
        """Test that a destination-only read-only directory is deleted with its contents."""
        write(tmp_path / "src" / "keep.txt", "k")
        write(tmp_path / "dest" / "stale" / "f.txt", "s")
        os.chmod(tmp_path / "dest" / "stale", 0o555)

        result = await self.engine.copy(str(tmp_path / "src"), str(tmp_path / "dest"))

        assert str(tmp_path / "dest" / "stale") in result.removed
        assert sorted(os.listdir(tmp_path / "dest")) == ["keep.txt"]
