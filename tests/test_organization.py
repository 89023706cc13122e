import os
import pytest
from pathlib import Path
from datetime import datetime

from photo_spool.exceptions import CollisionError, ErrorKind, FileOperationError
from photo_spool.organization.mover import FileMover, collision_name, duplicate_name
from photo_spool.organization.rules import (
    DestinationPlanner,
    candidate_destinations,
    normalize_extension,
    resolve_destination,
)


def test_resolve_destination_example(capture_time):
    dest = resolve_destination(Path("/archive"), capture_time, ".JPG")
    assert dest == Path("/archive/2023/07/2023-07-04_101530.jpg")


@pytest.mark.parametrize(
    "ext,expected",
    [
        (".JPG", ".jpg"),
        (".jpeg", ".jpg"),
        (".JPEG", ".jpg"),
        (".Png", ".png"),
        ("png", ".png"),
        ("", ""),
    ],
)
def test_normalize_extension(ext, expected):
    assert normalize_extension(ext) == expected


def test_month_and_time_are_zero_padded():
    dt = datetime(2021, 1, 2, 3, 4, 5)
    dest = resolve_destination(Path("/base"), dt, ".png")
    assert dest == Path("/base/2021/01/2021-01-02_030405.png")


def test_resolve_destination_is_pure(tmp_path, capture_time):
    first = resolve_destination(tmp_path, capture_time, ".jpg")
    second = resolve_destination(tmp_path, capture_time, ".jpg")
    assert first == second
    assert not first.parent.exists()


def test_candidates_step_one_second_across_midnight():
    dt = datetime(2022, 12, 31, 23, 59, 59)
    names = [p.relative_to("/a").as_posix() for p in candidate_destinations(Path("/a"), dt, ".jpg", 2)]
    assert names == ["2022/12/2022-12-31_235959.jpg", "2023/01/2023-01-01_000000.jpg"]


def test_planner_skips_taken(capture_time):
    taken = {
        Path("/a/2023/07/2023-07-04_101530.jpg"),
        Path("/a/2023/07/2023-07-04_101531.jpg"),
    }
    planner = DestinationPlanner(Path("/a"))
    assert planner.plan(capture_time, ".jpg", taken.__contains__) == Path("/a/2023/07/2023-07-04_101532.jpg")


def test_planner_gives_up(capture_time):
    planner = DestinationPlanner(Path("/a"), max_attempts=3)
    assert planner.plan(capture_time, ".jpg", lambda p: True) is None


def test_mover_moves(tmp_path):
    src = tmp_path / "test.file"
    src.write_bytes(b"content")
    dest = tmp_path / "dest" / "deep" / "test.file"

    FileMover().move(src, dest)

    assert dest.read_bytes() == b"content"
    assert not src.exists()


def test_mover_never_overwrites(tmp_path):
    src = tmp_path / "new.jpg"
    src.write_bytes(b"new")
    dest = tmp_path / "existing.jpg"
    dest.write_bytes(b"old")

    with pytest.raises(CollisionError) as exc:
        FileMover().move(src, dest)

    assert exc.value.kind is ErrorKind.COLLISION
    assert exc.value.destination == dest
    assert dest.read_bytes() == b"old"
    assert src.read_bytes() == b"new"


def test_mover_dry_run(tmp_path):
    src = tmp_path / "a.jpg"
    src.write_bytes(b"a")
    dest = tmp_path / "out" / "a.jpg"

    assert FileMover(dry_run=True).move(src, dest) == dest
    assert src.exists()
    assert not dest.parent.exists()


def test_mover_rolls_back_when_source_cannot_be_removed(monkeypatch, tmp_path):
    src = tmp_path / "card" / "IMG_0001.JPG"
    src.parent.mkdir()
    src.write_bytes(b"content")
    dest = tmp_path / "archive" / "2023-07-04_101530.jpg"

    def read_only(path):
        raise PermissionError("read-only card")

    monkeypatch.setattr(os, "remove", read_only)
    with pytest.raises(FileOperationError) as exc:
        FileMover().move(src, dest)

    assert isinstance(exc.value.cause, PermissionError)
    assert src.read_bytes() == b"content"
    assert not dest.exists()


def test_quarantine_keeps_name(tmp_path):
    src = tmp_path / "IMG_0001.JPG"
    src.write_bytes(b"x")
    out = FileMover().quarantine(src, tmp_path / "errors" / src.name)
    assert out == tmp_path / "errors" / "IMG_0001.JPG"
    assert out.exists()


def test_quarantine_numbers_taken_names(tmp_path):
    errors = tmp_path / "errors"
    errors.mkdir()
    (errors / "clip.mov").write_bytes(b"first")
    (errors / "clip.mov.1").write_bytes(b"second")
    src = tmp_path / "clip.mov"
    src.write_bytes(b"third")

    out = FileMover().quarantine(src, errors / "clip.mov")

    assert out == errors / "clip.mov.2"
    assert out.read_bytes() == b"third"
    assert (errors / "clip.mov").read_bytes() == b"first"
    assert not src.exists()


def test_quarantine_gives_up(tmp_path):
    errors = tmp_path / "errors"
    errors.mkdir()
    (errors / "a.jpg").write_bytes(b"0")
    (errors / "a.jpg.1").write_bytes(b"1")
    src = tmp_path / "a.jpg"
    src.write_bytes(b"x")

    with pytest.raises(CollisionError):
        FileMover().quarantine(src, errors / "a.jpg", max_attempts=2)
    assert src.exists()


def test_error_names():
    err = Path("/error")
    assert duplicate_name(err, Path("/spool/IMG_0002.JPG")) == Path("/error/IMG_0002.JPG.DUPLICATE")
    assert collision_name(err, Path("/spool/IMG_0003.JPG"), Path("/a/2023/07/2023-07-04_101530.jpg")) == \
        Path("/error/IMG_0003::2023-07-04_101530.jpg")
