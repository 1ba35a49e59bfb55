"""Tests for FileSource."""

import threading

from x509_watch.certs.models import ErrorKind
from x509_watch.sources.file_source import FileSource


class TestFileSource:
    """Test suite for FileSource."""

    def test_loads_single_certificate(self, logger, cert_factory, pem_file):
        path = pem_file("server.pem", cert_factory(common_name="server"))

        batch = FileSource(logger).load(path)

        assert len(batch.records) == 1
        assert batch.records[0].common_name == "server"
        assert batch.records[0].file_path == path
        assert batch.errors == ()

    def test_loads_bundle(self, logger, cert_factory, pem_file):
        path = pem_file(
            "chain.pem",
            cert_factory(common_name="leaf"),
            cert_factory(common_name="intermediate"),
        )

        batch = FileSource(logger).load(path)

        assert [r.common_name for r in batch.records] == ["leaf", "intermediate"]

    def test_missing_file_is_read_error(self, logger, tmp_path):
        path = str(tmp_path / "missing.pem")

        batch = FileSource(logger).load(path)

        assert batch.records == ()
        assert len(batch.errors) == 1
        assert batch.errors[0].kind == ErrorKind.READ
        assert batch.errors[0].path == path

    def test_directory_is_read_error(self, logger, tmp_path):
        batch = FileSource(logger).load(str(tmp_path))

        assert [e.kind for e in batch.errors] == [ErrorKind.READ]

    def test_empty_file_is_pem_error(self, logger, tmp_path):
        path = tmp_path / "empty.pem"
        path.write_bytes(b"")

        batch = FileSource(logger).load(str(path))

        assert [e.kind for e in batch.errors] == [ErrorKind.PEM]

    def test_cancelled_before_read(self, logger, cert_factory, pem_file):
        path = pem_file("server.pem", cert_factory())
        cancel = threading.Event()
        cancel.set()

        batch = FileSource(logger).load(path, cancel)

        assert batch.records == ()
        assert [e.kind for e in batch.errors] == [ErrorKind.UNKNOWN]

    def test_works_without_logger(self, cert_factory, pem_file):
        path = pem_file("server.pem", cert_factory())

        batch = FileSource().load(path)

        assert len(batch.records) == 1
