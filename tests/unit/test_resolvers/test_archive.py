"""Tests for the package archive resolver."""

from typing import AsyncGenerator

import pytest
from aioresponses import aioresponses

from nuget_attributions.models import SOURCE_LICENSE_URL_ARCHIVE, LibraryInfo
from nuget_attributions.nuget.client import NuGetClient
from nuget_attributions.resolvers.archive import ArchiveResolver

DEPRECATED = "https://aka.ms/deprecateLicenseUrl"
ARCHIVE_URL = "https://www.nuget.org/api/v2/package/Serilog/3.1.1"


@pytest.fixture
async def client() -> AsyncGenerator[NuGetClient, None]:
    client = NuGetClient()
    yield client
    await client.close()


@pytest.fixture
def resolver(client, run_cache) -> ArchiveResolver:
    return ArchiveResolver(client, run_cache, DEPRECATED)


def _info(**kwargs) -> LibraryInfo:
    kwargs.setdefault("license_url", DEPRECATED)
    return LibraryInfo(package_name="Serilog", package_version="3.1.1", **kwargs)


def test_name_and_priority(resolver):
    assert resolver.name == "Archive"
    assert resolver.priority == 30


@pytest.mark.asyncio
async def test_reads_license_file(resolver, run_cache, make_archive):
    info = _info(license_file="LICENSE.md")
    with aioresponses() as m:
        m.get(ARCHIVE_URL, body=make_archive({"LICENSE.md": "Apache License 2.0"}))

        result = await resolver.resolve(info)

    assert result.text == "Apache License 2.0"
    assert result.source == SOURCE_LICENSE_URL_ARCHIVE
    assert run_cache.get_license_file(info.identity) == "Apache License 2.0"


@pytest.mark.asyncio
async def test_uses_run_cache(resolver, run_cache):
    info = _info(license_file="LICENSE.md")
    run_cache.set_license_file(info.identity, "Cached license")

    with aioresponses():
        result = await resolver.resolve(info)

    assert result.text == "Cached license"


@pytest.mark.asyncio
async def test_falls_back_to_license_type_as_entry(resolver, make_archive):
    info = _info(license_type="LICENSE.txt")
    with aioresponses() as m:
        m.get(ARCHIVE_URL, body=make_archive({"LICENSE.txt": "text"}))

        result = await resolver.resolve(info)

    assert result.text == "text"


@pytest.mark.asyncio
async def test_other_license_urls_are_skipped(resolver):
    with aioresponses():
        assert await resolver.resolve(_info(license_url="https://licenses.nuget.org/MIT")) is None


@pytest.mark.asyncio
async def test_no_entry(resolver):
    assert await resolver.resolve(_info()) is None


@pytest.mark.asyncio
async def test_download_failure(resolver):
    with aioresponses() as m:
        m.get(ARCHIVE_URL, status=404)

        assert await resolver.resolve(_info(license_file="LICENSE.md")) is None
