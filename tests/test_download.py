from __future__ import annotations

from io import StringIO
from pathlib import Path
import os
import tempfile
import unittest

import requests

from bach.context import Console
from bach.download import (
    DownloadError,
    Downloader,
    OfflineArtifactMissing,
    download_tool,
    extract_file_name,
)
from bach.properties import Property

from tests.helpers import LAST_MODIFIED, FakeSession, make_context

URI = "https://repo.example.com/org/example/lib/1.0/lib-1.0.jar"


class ExtractFileNameTests(unittest.TestCase):
    def test_last_path_element(self) -> None:
        self.assertEqual(extract_file_name(URI), "lib-1.0.jar")

    def test_query_and_fragment_are_ignored(self) -> None:
        self.assertEqual(extract_file_name("https://host/a/b/tool.zip?raw=true#top"), "tool.zip")

    def test_plain_name(self) -> None:
        self.assertEqual(extract_file_name("tool.jar"), "tool.jar")


class DownloaderTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.destination = Path(self.temp_dir.name) / "cache"
        self.console = Console("debug", out=StringIO(), err=StringIO())

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def downloader(self, session: FakeSession, *, offline: bool = False) -> Downloader:
        return Downloader(self.console, offline=offline, session=session)

    def test_download_writes_file_and_stamps_remote_time(self) -> None:
        session = FakeSession(b"payload")
        target = self.downloader(session).download(self.destination, URI)

        self.assertEqual(target, self.destination / "lib-1.0.jar")
        self.assertEqual(target.read_bytes(), b"payload")
        self.assertEqual(target.stat().st_mtime_ns, LAST_MODIFIED * 1_000_000_000)
        self.assertEqual(session.closed, 1)
        self.assertIn("Downloaded lib-1.0.jar successfully.", self.console.out.getvalue())

    def test_unchanged_remote_is_transferred_once(self) -> None:
        session = FakeSession(b"payload")
        downloader = self.downloader(session)

        first = downloader.download(self.destination, URI)
        second = downloader.download(self.destination, URI)

        self.assertEqual(first, second)
        self.assertEqual(len(session.requests), 2)
        self.assertEqual(session.transfers, [URI])

    def test_changed_remote_timestamp_replaces_file(self) -> None:
        target = self.destination / "lib-1.0.jar"
        target.parent.mkdir(parents=True)
        target.write_bytes(b"stale")
        os.utime(target, (LAST_MODIFIED - 60, LAST_MODIFIED - 60))

        session = FakeSession(b"fresh")
        self.downloader(session).download(self.destination, URI)

        self.assertEqual(session.transfers, [URI])
        self.assertEqual(target.read_bytes(), b"fresh")
        self.assertEqual(target.stat().st_mtime_ns, LAST_MODIFIED * 1_000_000_000)

    def test_offline_with_existing_file_makes_no_request(self) -> None:
        target = self.destination / "lib-1.0.jar"
        target.parent.mkdir(parents=True)
        target.write_bytes(b"cached")

        session = FakeSession()
        result = self.downloader(session, offline=True).download(self.destination, URI)

        self.assertEqual(result, target)
        self.assertEqual(session.requests, [])

    def test_offline_with_missing_file_fails(self) -> None:
        session = FakeSession()
        with self.assertRaises(OfflineArtifactMissing) as ctx:
            self.downloader(session, offline=True).download(self.destination, URI)

        self.assertEqual(ctx.exception.target, self.destination / "lib-1.0.jar")
        self.assertIn("Target is missing and being offline", str(ctx.exception))
        self.assertEqual(self.console.err.getvalue(), "")
        self.assertEqual(session.requests, [])

    def test_http_error_is_wrapped(self) -> None:
        session = FakeSession(error=requests.HTTPError("404 Client Error"))
        with self.assertRaises(DownloadError) as ctx:
            self.downloader(session).download(self.destination, URI)

        self.assertIsInstance(ctx.exception.__cause__, requests.HTTPError)
        self.assertFalse((self.destination / "lib-1.0.jar").exists())

    def test_missing_last_modified_uses_current_time(self) -> None:
        session = FakeSession(b"payload", last_modified=None)
        target = self.downloader(session).download(self.destination, URI)

        self.assertGreater(target.stat().st_mtime, LAST_MODIFIED)


class DownloadToolTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.base = Path(self.temp_dir.name)

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def test_tool_lands_in_named_folder_under_tool_home(self) -> None:
        home = self.base / "tools"
        context = make_context(
            self.base,
            overrides={
                Property.TOOL_HOME.key: str(home),
                Property.TOOL_URI_JUNIT.key: "https://host/junit/console.jar",
            },
            session=FakeSession(b"junit"),
        )

        path = download_tool(context, Property.TOOL_URI_JUNIT)

        self.assertEqual(path, home / "junit" / "console.jar")
        self.assertEqual(path.read_bytes(), b"junit")

    def test_non_tool_property_is_rejected(self) -> None:
        context = make_context(self.base)
        with self.assertRaises(ValueError):
            download_tool(context, Property.PROJECT_NAME)


if __name__ == "__main__":
    unittest.main()
