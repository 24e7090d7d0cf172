import asyncio

import pytest

from resumematch.core.exceptions import CorruptRecordError, StorageError
from resumematch.schemas.resume import Resume
from resumematch.services.resume_repository import ResumeRepository


def _seed(services, resume_id, **fields):
    resume = Resume(id=resume_id, resume_path=f"{resume_id}.pdf", image_path=f"{resume_id}.png", **fields)
    asyncio.run(services.kv.set(resume.key, resume.to_json()))
    return resume


def test_list_all_returns_only_resume_records(services):
    _seed(services, "a", job_title="Dev")
    _seed(services, "b")
    asyncio.run(services.kv.set("a_plan", "## Plan"))

    resumes = asyncio.run(ResumeRepository(services).list_all())
    assert sorted(r.id for r in resumes) == ["a", "b"]


def test_list_all_skips_corrupt_records(services):
    _seed(services, "good")
    asyncio.run(services.kv.set("resume:broken", "{not json"))
    asyncio.run(services.kv.set("resume:incomplete", '{"id": "incomplete"}'))

    resumes = asyncio.run(ResumeRepository(services).list_all())
    assert [r.id for r in resumes] == ["good"]


def test_list_all_empty_store(services):
    assert asyncio.run(ResumeRepository(services).list_all()) == []


def test_get_by_id(services):
    seeded = _seed(services, "abc", company_name="Acme")
    repository = ResumeRepository(services)
    assert asyncio.run(repository.get("abc")) == seeded
    assert asyncio.run(repository.get("missing")) is None


def test_get_corrupt_record_raises(services):
    asyncio.run(services.kv.set("resume:bad", "{"))
    with pytest.raises(CorruptRecordError):
        asyncio.run(ResumeRepository(services).get("bad"))


def test_wipe_all_removes_artifacts_and_keys(services):
    async def seed():
        pdf = await services.object_store.upload("cv.pdf", b"%PDF")
        png = await services.object_store.upload("cv.png", b"png")
        resume = Resume(id="w1", resume_path=pdf.path, image_path=png.path)
        await services.kv.set(resume.key, resume.to_json())
        await services.kv.set("w1_plan", "## Plan")

    asyncio.run(seed())
    repository = ResumeRepository(services)
    report = asyncio.run(repository.wipe_all())

    assert report.status == "complete"
    assert len(report.deleted) == 2
    assert report.flushed
    assert asyncio.run(repository.list_all()) == []
    assert asyncio.run(services.object_store.list_dir()) == []
    assert asyncio.run(services.kv.list("*")) == []


def test_wipe_all_on_empty_store(services):
    report = asyncio.run(ResumeRepository(services).wipe_all())
    assert report.status == "complete"
    assert report.deleted == []


def test_wipe_continues_after_a_failed_delete(services, monkeypatch):
    async def seed():
        a = await services.object_store.upload("a.pdf", b"a")
        b = await services.object_store.upload("b.pdf", b"b")
        await services.kv.set("resume:x", "{}")
        return a, b

    a, b = asyncio.run(seed())
    original = services.object_store.delete

    async def locked_delete(path):
        if path == a.path:
            raise StorageError(f"Failed to delete {path}")
        await original(path)

    monkeypatch.setattr(services.object_store, "delete", locked_delete)
    report = asyncio.run(ResumeRepository(services).wipe_all())

    assert report.status == "partial"
    assert report.deleted == [b.path]
    assert [f.path for f in report.failed] == [a.path]
    # Already deleted artifacts stay deleted and the flush still runs
    assert report.flushed
    assert asyncio.run(services.kv.list("*")) == []
    assert [o.path for o in asyncio.run(services.object_store.list_dir())] == [a.path]


def test_wipe_reports_flush_failure(services, monkeypatch):
    async def broken_flush():
        raise StorageError("Key-value store operation failed")

    monkeypatch.setattr(services.kv, "flush", broken_flush)
    report = asyncio.run(ResumeRepository(services).wipe_all())
    assert not report.flushed
    assert report.flush_error == "Key-value store operation failed"
    assert report.status == "partial"
