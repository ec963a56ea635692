# aidon_monitor/tests/test_frame_assembler.py

from aidon_monitor.models.profile import AIDON_7534
from aidon_monitor.services.frame_assembler import FrameAssembler
from aidon_monitor.tests.fake_source import advance, make_scheduler
from aidon_monitor.tests.frames import DOCUMENTED_FRAME, FRAME_LENGTH, SAMPLE_FRAME


def _assembler(**kwargs):
    clock, scheduler = make_scheduler()
    frames, errors = [], []
    assembler = FrameAssembler(AIDON_7534, scheduler, frames.append, errors.append, **kwargs)
    return clock, scheduler, assembler, frames, errors


def test_single_chunk_frame():
    _, _, assembler, frames, errors = _assembler()
    assembler.ingest(DOCUMENTED_FRAME)

    assert frames == [DOCUMENTED_FRAME]
    assert len(frames[0]) == FRAME_LENGTH
    assert errors == []
    assert assembler.buffer == bytearray()
    assert not assembler.assembling


def test_frame_split_across_many_chunks():
    _, _, assembler, frames, errors = _assembler()
    for i in range(0, len(DOCUMENTED_FRAME), 64):
        assembler.ingest(DOCUMENTED_FRAME[i:i + 64])
        if i + 64 < len(DOCUMENTED_FRAME):
            assert frames == []
            assert assembler.assembling

    assert frames == [DOCUMENTED_FRAME]
    assert errors == []


def test_leading_garbage_is_skipped():
    _, _, assembler, frames, _ = _assembler()
    assembler.ingest(b"\x00\x13garbage\r\n" + SAMPLE_FRAME)
    assert frames == [SAMPLE_FRAME]


def test_empty_chunk_does_not_arm_timer():
    _, _, assembler, _, _ = _assembler()
    assembler.ingest(b"")
    assert not assembler.assembling


def test_partial_frame_times_out_once():
    clock, scheduler, assembler, frames, errors = _assembler()
    assembler.ingest(DOCUMENTED_FRAME[:100])

    advance(clock, scheduler, 1.75)
    assert errors == []

    advance(clock, scheduler, 0.5)
    assert [e.kind for e in errors] == ["FrameTimeout"]
    assert errors[0].detail == DOCUMENTED_FRAME[:100]
    assert errors[0].message.startswith("Timeout, buffer: /ADN9 7534")
    assert assembler.buffer == bytearray()
    assert not assembler.assembling

    advance(clock, scheduler, 10)
    assert len(errors) == 1

    assembler.ingest(DOCUMENTED_FRAME)
    assert frames == [DOCUMENTED_FRAME]


def test_wrong_device_identifier_never_forms_a_frame():
    clock, scheduler, assembler, frames, errors = _assembler()
    assembler.ingest(DOCUMENTED_FRAME.replace(b"/ADN9 7534", b"/ADN9 9999"))
    assert frames == []

    advance(clock, scheduler, 2.5)
    assert [e.kind for e in errors] == ["FrameTimeout"]


def test_later_header_is_used_after_mismatched_one():
    _, _, assembler, frames, _ = _assembler()
    assembler.ingest(b"/ADN9 0000 junk\r\n" + DOCUMENTED_FRAME)
    assert frames == [DOCUMENTED_FRAME]


def test_two_frames_in_one_chunk():
    _, _, assembler, frames, errors = _assembler()
    assembler.ingest(DOCUMENTED_FRAME + SAMPLE_FRAME)

    assert frames == [DOCUMENTED_FRAME, SAMPLE_FRAME]
    assert errors == []
    assert not assembler.assembling


def test_header_split_after_a_frame_is_carried_over():
    clock, scheduler, assembler, frames, errors = _assembler()
    assembler.ingest(DOCUMENTED_FRAME + SAMPLE_FRAME[:3])
    assert frames == [DOCUMENTED_FRAME]
    assert assembler.buffer == bytearray(b"/AD")
    assert assembler.assembling

    assembler.ingest(SAMPLE_FRAME[3:])
    assert frames == [DOCUMENTED_FRAME, SAMPLE_FRAME]

    advance(clock, scheduler, 5)
    assert errors == []


def test_trailing_noise_after_frame_is_dropped():
    clock, scheduler, assembler, frames, errors = _assembler()
    assembler.ingest(DOCUMENTED_FRAME + b"\x00\x00")
    assert frames == [DOCUMENTED_FRAME]
    assert not assembler.assembling

    advance(clock, scheduler, 5)
    assert errors == []


def test_buffer_growth_is_bounded():
    _, _, assembler, frames, _ = _assembler(max_buffer_bytes=1000)
    for _ in range(20):
        assembler.ingest(b"x" * 500)
        assert len(assembler.buffer) <= 1000

    assembler.ingest(DOCUMENTED_FRAME)
    assert frames == [DOCUMENTED_FRAME]


def test_reset_discards_without_reporting():
    clock, scheduler, assembler, _, errors = _assembler()
    assembler.ingest(DOCUMENTED_FRAME[:50])
    assembler.reset()

    advance(clock, scheduler, 5)
    assert errors == []
    assert assembler.buffer == bytearray()
