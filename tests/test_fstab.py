"""Tests for storage/fstab.py - commented fstab snippet rendering."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

from disk_slice.domain.models import CreatedPartition
from disk_slice.storage.fstab import (
    format_fstab_line,
    render_fstab_snippet,
    snippet_path,
    write_fstab_snippet,
)

GENERATED_AT = datetime(2024, 5, 1, 12, 30, 0, tzinfo=timezone.utc)


def created(plan, uuids):
    return [
        CreatedPartition(entry=entry, device_path=f"{plan.disk_path}{entry.index}", uuid=uuid)
        for entry, uuid in zip(plan.entries, uuids)
    ]


class TestSnippetPath:
    def test_named_after_disk(self, tmp_path):
        assert snippet_path("/dev/nvme1n1", tmp_path) == tmp_path / "fstab.new.nvme1n1.txt"

    def test_accepts_string_dir(self):
        assert snippet_path("/dev/sdb", "/root") == Path("/root/fstab.new.sdb.txt")


class TestRenderFstabSnippet:
    """Tests for render_fstab_snippet()."""

    def test_line_format(self):
        assert (
            format_fstab_line("abcd", "/mnt/data1", "ext4", 2)
            == "# UUID=abcd  /mnt/data1  ext4  defaults,noatime  0  2"
        )

    def test_full_snippet(self, three_way_plan):
        text = render_fstab_snippet(
            created(three_way_plan, ["u1", "u2", "u3"]), generated_at=GENERATED_AT
        )

        assert text == (
            "# fstab snippet generated by disk-slice 2024-05-01T12:30:00Z\n"
            "# /mnt/data1 (ext4)\n"
            "# UUID=u1  /mnt/data1  ext4  defaults,noatime  0  2\n"
            "\n"
            "# /mnt/data2 (xfs)\n"
            "# UUID=u2  /mnt/data2  xfs  defaults,noatime  0  0\n"
            "\n"
            "# /mnt/data3 (btrfs)\n"
            "# UUID=u3  /mnt/data3  btrfs  defaults,noatime  0  2\n"
            "\n"
        )

    def test_every_entry_is_commented(self, three_way_plan):
        text = render_fstab_snippet(created(three_way_plan, ["a", "b", "c"]))

        assert all(line.startswith("#") for line in text.splitlines() if line)

    def test_timestamp_converted_to_utc(self, three_way_plan):
        local = GENERATED_AT.astimezone(timezone(timedelta(hours=2)))

        text = render_fstab_snippet([], generated_at=local)

        assert text.startswith("# fstab snippet generated by disk-slice 2024-05-01T12:30:00Z")


class TestWriteFstabSnippet:
    def test_writes_file_and_creates_directory(self, tmp_path, three_way_plan):
        path = tmp_path / "out" / "fstab.new.sdb.txt"

        result = write_fstab_snippet(
            created(three_way_plan, ["u1", "u2", "u3"]), path, generated_at=GENERATED_AT
        )

        assert result == path
        content = path.read_text()
        assert "# UUID=u2  /mnt/data2  xfs  defaults,noatime  0  0" in content
        assert content.count("# UUID=") == 3
