from unittest.mock import MagicMock

import httplib2
import pytest
from googleapiclient.errors import HttpError

from todosync_core.errors import DataError, MissingRemoteError, SetupError, TransientError
from todosync_sync import drive
from todosync_sync.drive import DriveStore, build_name_query


def _http_error(status: int) -> HttpError:
    return HttpError(httplib2.Response({"status": status}), b"", uri="https://drive/x")


@pytest.fixture()
def service():
    return MagicMock()


def test_name_query_matches_names_and_skips_trash():
    assert build_name_query(["done.txt", "todo.txt"]) == (
        "(name = 'done.txt' or name = 'todo.txt') and trashed = false"
    )


def test_name_query_escapes_quotes():
    assert build_name_query(["it's.txt"]) == "(name = 'it\\'s.txt') and trashed = false"


def test_list_follows_pages_and_sorts(service):
    service.files().list().execute.side_effect = [
        {"files": [{"id": "2", "name": "todo.txt"}], "nextPageToken": "p2"},
        {"files": [{"id": "1", "name": "done.txt"}]},
    ]

    objs = DriveStore(service).list_by_name(["todo.txt", "done.txt"])

    assert objs == [{"id": "1", "name": "done.txt"}, {"id": "2", "name": "todo.txt"}]
    calls = service.files().list.call_args_list
    assert calls[-1].kwargs["pageToken"] == "p2"
    assert calls[-1].kwargs["orderBy"] == "name"


def test_empty_listing_is_missing_remote(service):
    service.files().list().execute.return_value = {"files": []}

    with pytest.raises(MissingRemoteError) as exc:
        DriveStore(service).list_by_name(["todo.txt"])
    assert "todo.txt" in str(exc.value)


def test_fingerprint_is_md5_checksum(service):
    service.files().get().execute.return_value = {"md5Checksum": "abc", "size": "3"}

    assert DriveStore(service).fingerprint_of("f1") == "abc"
    assert service.files().get.call_args.kwargs["fileId"] == "f1"


def test_native_document_has_no_fingerprint(service):
    service.files().get().execute.return_value = {"version": "7"}

    assert DriveStore(service).fingerprint_of("doc") is None


@pytest.mark.parametrize(
    "status, error",
    [(404, DataError), (401, SetupError), (403, SetupError), (500, TransientError), (429, TransientError)],
)
def test_http_errors_are_classified(service, status, error):
    service.files().get().execute.side_effect = _http_error(status)

    with pytest.raises(error) as exc:
        DriveStore(service).fingerprint_of("f1")
    assert exc.value.operation == "get-metadata"
    assert exc.value.filename == "f1"


def test_network_errors_are_transient(service):
    service.files().list().execute.side_effect = ConnectionResetError("reset")

    with pytest.raises(TransientError):
        DriveStore(service).list_by_name(["todo.txt"])


def test_download_collects_all_chunks(service, monkeypatch):
    class FakeDownloader:
        def __init__(self, fd, request):
            self.fd = fd
            self.chunks = [b"(A) one\n", b"two\n"]

        def next_chunk(self):
            self.fd.write(self.chunks.pop(0))
            return None, not self.chunks

    monkeypatch.setattr(drive, "MediaIoBaseDownload", FakeDownloader)

    assert DriveStore(service).download("f1") == b"(A) one\ntwo\n"
    service.files().get_media.assert_called_with(fileId="f1")


def test_download_error_names_the_object(service, monkeypatch):
    class FailingDownloader:
        def __init__(self, fd, request):
            pass

        def next_chunk(self):
            raise _http_error(404)

    monkeypatch.setattr(drive, "MediaIoBaseDownload", FailingDownloader)

    with pytest.raises(DataError) as exc:
        DriveStore(service).download("gone")
    assert exc.value.filename == "gone"


def test_upload_replaces_content_only(service):
    DriveStore(service).upload("f1", b"new content\n")

    kwargs = service.files().update.call_args.kwargs
    assert kwargs["fileId"] == "f1"
    assert kwargs["body"] == {}
    assert kwargs["media_body"].mimetype() == "text/plain"
    assert kwargs["media_body"].getbytes(0, 100) == b"new content\n"


def test_upload_failure_is_transient(service):
    service.files().update().execute.side_effect = _http_error(503)

    with pytest.raises(TransientError) as exc:
        DriveStore(service).upload("f1", b"x")
    assert exc.value.operation == "upload"


def test_transport_errors_during_a_cycle_are_transient(service):
    from google.auth.exceptions import TransportError

    service.files().get().execute.side_effect = TransportError("connection aborted")

    with pytest.raises(TransientError):
        DriveStore(service).fingerprint_of("f1")


def test_revoked_token_during_a_cycle_is_a_setup_error(service):
    from google.auth.exceptions import RefreshError

    service.files().list().execute.side_effect = RefreshError("invalid_grant")

    with pytest.raises(SetupError):
        DriveStore(service).list_by_name(["todo.txt"])


def test_unreachable_server_is_transient(service):
    service.files().update().execute.side_effect = httplib2.ServerNotFoundError("no route")

    with pytest.raises(TransientError):
        DriveStore(service).upload("f1", b"x")
