"""Tests for the NuGet registry client."""

from typing import AsyncGenerator

import pytest
from aioresponses import aioresponses

from nuget_attributions.cache import ArchiveCache
from nuget_attributions.nuget.client import NuGetClient

NUSPEC_URL = "https://api.nuget.org/v3-flatcontainer/newtonsoft.json/13.0.3/newtonsoft.json.nuspec"
ARCHIVE_URL = "https://www.nuget.org/api/v2/package/Newtonsoft.Json/13.0.3"


@pytest.fixture
async def client() -> AsyncGenerator[NuGetClient, None]:
    """Return a NuGetClient without an archive cache."""
    client = NuGetClient()
    yield client
    await client.close()


class TestUrls:
    def test_nuspec_url_is_lower_cased(self):
        assert NuGetClient().nuspec_url("Newtonsoft.Json", "13.0.3") == NUSPEC_URL

    def test_archive_url_keeps_case(self):
        assert NuGetClient().archive_url("Newtonsoft.Json", "13.0.3") == ARCHIVE_URL


class TestGetNuspec:
    @pytest.mark.asyncio
    async def test_success(self, client: NuGetClient, make_nuspec):
        with aioresponses() as m:
            m.get(NUSPEC_URL, body=make_nuspec())

            nuspec = await client.get_nuspec("Newtonsoft.Json", "13.0.3")

        assert b"<id>Newtonsoft.Json</id>" in nuspec

    @pytest.mark.asyncio
    async def test_body_is_not_decoded(self, client: NuGetClient):
        body = b'<?xml version="1.0" encoding="iso-8859-1"?><package>\xe9</package>'
        with aioresponses() as m:
            m.get(NUSPEC_URL, body=body)

            assert await client.get_nuspec("Newtonsoft.Json", "13.0.3") == body

    @pytest.mark.asyncio
    async def test_not_found(self, client: NuGetClient):
        with aioresponses() as m:
            m.get(NUSPEC_URL, status=404)

            assert await client.get_nuspec("Newtonsoft.Json", "13.0.3") is None


class TestArchives:
    @pytest.mark.asyncio
    async def test_read_entry_ignores_case(self, client: NuGetClient, make_archive):
        with aioresponses() as m:
            m.get(ARCHIVE_URL, body=make_archive({"LICENSE.md": "The MIT License"}))

            text = await client.read_archive_entry("Newtonsoft.Json", "13.0.3", "license.md")

        assert text == "The MIT License"

    @pytest.mark.asyncio
    async def test_read_entry_with_backslashes(self, client: NuGetClient, make_archive):
        with aioresponses() as m:
            m.get(ARCHIVE_URL, body=make_archive({"docs/LICENSE.txt": "text"}))

            text = await client.read_archive_entry(
                "Newtonsoft.Json", "13.0.3", "docs\\LICENSE.txt"
            )

        assert text == "text"

    @pytest.mark.asyncio
    async def test_missing_entry(self, client: NuGetClient, make_archive):
        with aioresponses() as m:
            m.get(ARCHIVE_URL, body=make_archive({"README.md": "readme"}))

            assert await client.read_archive_entry("Newtonsoft.Json", "13.0.3", "LICENSE") is None

    @pytest.mark.asyncio
    async def test_bad_zip(self, client: NuGetClient):
        with aioresponses() as m:
            m.get(ARCHIVE_URL, body=b"not a zip")

            assert await client.read_archive_entry("Newtonsoft.Json", "13.0.3", "LICENSE") is None

    @pytest.mark.asyncio
    async def test_download_failure(self, client: NuGetClient):
        with aioresponses() as m:
            m.get(ARCHIVE_URL, status=404)

            assert await client.get_archive("Newtonsoft.Json", "13.0.3") is None

    @pytest.mark.asyncio
    async def test_archive_cache(self, tmp_path, make_archive):
        archive = make_archive({"LICENSE": "text"})
        client = NuGetClient(archive_cache=ArchiveCache(tmp_path / "archives.db"))
        try:
            with aioresponses() as m:
                m.get(ARCHIVE_URL, body=archive)

                first = await client.get_archive("Newtonsoft.Json", "13.0.3")
                # Served from the cache; the mock would reject a second request
                second = await client.get_archive("Newtonsoft.Json", "13.0.3")
        finally:
            await client.close()

        assert first == archive
        assert second == archive
