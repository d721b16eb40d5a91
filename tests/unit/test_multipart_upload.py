from __future__ import annotations

import pytest

from bucketfs.application.services.multipart_upload import MultipartUpload, UploadState
from bucketfs.config import MIN_PART_SIZE
from bucketfs.errors import UploadInitError, UploadStateError

PART = MIN_PART_SIZE


def _payload(size: int) -> bytes:
    return bytes(i % 251 for i in range(size))


@pytest.mark.parametrize("chunk_size", [1000, 64 * 1024, PART - 1, PART, PART + 7, 3 * PART])
def test_round_trip_is_independent_of_chunking(store, chunk_size: int) -> None:
    payload = _payload(2 * PART + 12345)
    sink = MultipartUpload(store, "bucket", "big.bin")

    for offset in range(0, len(payload), chunk_size):
        sink.append(payload[offset : offset + chunk_size])
    sink.finish()

    assert store.objects[("bucket", "big.bin")][0] == payload
    assert sink.state is UploadState.FINALIZED


def test_parts_are_bounded_and_sequential(store) -> None:
    sink = MultipartUpload(store, "bucket", "big.bin")

    sink.append(_payload(PART + 10))
    sink.append(_payload(PART))
    sink.finish()

    parts = store.ops("upload_part")
    assert [call[4] for call in parts] == [1, 2, 3]
    assert [call[5] for call in parts] == [PART, PART, 10]
    [complete] = store.ops("complete_multipart")
    assert complete[4] == [(1, "etag-1"), (2, "etag-2"), (3, "etag-3")]


def test_buffer_below_threshold_is_not_flushed(store) -> None:
    sink = MultipartUpload(store, "bucket", "small.bin")

    sink.append(b"abc")

    assert store.ops("initiate_multipart") == [("initiate_multipart", "bucket", "small.bin")]
    assert store.ops("upload_part") == []
    assert sink.pending == 3


def test_completion_sorts_parts_by_index(store) -> None:
    sink = MultipartUpload(store, "bucket", "big.bin")
    sink.append(_payload(2 * PART))
    sink.parts.reverse()

    sink.finish()

    [complete] = store.ops("complete_multipart")
    assert [index for index, _ in complete[4]] == [1, 2]


def test_initiate_happens_on_first_byte_only(store) -> None:
    sink = MultipartUpload(store, "bucket", "big.bin")

    assert store.calls == []
    sink.append(b"")
    assert store.calls == []
    sink.append(b"x")
    sink.append(b"y")

    assert len(store.ops("initiate_multipart")) == 1


def test_finish_without_data_writes_empty_object(store) -> None:
    sink = MultipartUpload(store, "bucket", "empty.bin")

    sink.finish()

    assert store.objects[("bucket", "empty.bin")][0] == b""
    assert store.ops("initiate_multipart") == []


def test_initiate_failure_is_fatal(store) -> None:
    store.fail("initiate_multipart", RuntimeError("boom"))
    sink = MultipartUpload(store, "bucket", "big.bin")

    with pytest.raises(UploadInitError) as excinfo:
        sink.append(b"data")

    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert store.ops("abort_multipart") == []
    with pytest.raises(UploadStateError):
        sink.append(b"more")


def test_part_failure_aborts_remote_session(store) -> None:
    store.fail("upload_part", ConnectionError("reset"), nth=2)
    sink = MultipartUpload(store, "bucket", "big.bin")
    sink.append(_payload(PART))

    with pytest.raises(ConnectionError):
        sink.append(_payload(PART))

    assert sink.state is UploadState.ABORTED
    assert store.ops("abort_multipart") == [("abort_multipart", "bucket", "big.bin", "upload-1")]
    assert store.ops("complete_multipart") == []
    assert ("bucket", "big.bin") not in store.objects


def test_completion_failure_aborts_and_propagates(store) -> None:
    store.fail("complete_multipart", ConnectionError("reset"))
    sink = MultipartUpload(store, "bucket", "big.bin")
    sink.append(b"tail")

    with pytest.raises(ConnectionError):
        sink.finish()

    assert len(store.ops("abort_multipart")) == 1


def test_abort_cleanup_failure_keeps_original_error(store) -> None:
    store.fail("upload_part", ValueError("bad part"))
    store.fail("abort_multipart", ConnectionError("abort failed"))
    sink = MultipartUpload(store, "bucket", "big.bin")

    with pytest.raises(ValueError, match="bad part"):
        sink.append(_payload(PART))


def test_context_manager_finishes_or_aborts(store) -> None:
    with MultipartUpload(store, "bucket", "ok.bin") as sink:
        sink.append(b"hello")
    assert store.objects[("bucket", "ok.bin")][0] == b"hello"

    with pytest.raises(KeyError):
        with MultipartUpload(store, "bucket", "bad.bin") as sink:
            sink.append(b"partial")
            raise KeyError("interrompido")
    assert ("bucket", "bad.bin") not in store.objects
    assert store.ops("abort_multipart")[-1][2] == "bad.bin"


def test_finalized_sink_rejects_writes(store) -> None:
    sink = MultipartUpload(store, "bucket", "done.bin")
    sink.append(b"x")
    sink.finish()

    with pytest.raises(UploadStateError):
        sink.append(b"y")
    with pytest.raises(UploadStateError):
        sink.finish()


def test_part_size_below_store_minimum_is_rejected(store) -> None:
    with pytest.raises(ValueError):
        MultipartUpload(store, "bucket", "k", part_size=1024)


def test_flush_before_initiate_is_a_state_error(store) -> None:
    sink = MultipartUpload(store, "bucket", "k")
    sink._buffer += b"x"

    with pytest.raises(UploadStateError):
        sink._flush()

    assert store.ops("upload_part") == []
