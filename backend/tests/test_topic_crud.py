import asyncio

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from studyguide.crud.topic import SqlTopicRepository, topic_crud
from studyguide.models import Base, StudyTopic
from studyguide.schemas.topic import QuizItem, Topic


async def _session_maker():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    return engine, async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def _topic(section_id, summary):
    return Topic(
        id=section_id,
        section_title=f"Section {section_id}",
        summary=summary,
        quiz=[QuizItem(question="Why?", answer="Because.")],
        confidence="high",
    )


def test_repository_saves_lists_and_overwrites():
    async def run():
        engine, session_maker = await _session_maker()
        repository = SqlTopicRepository(session_maker)

        await repository.save_topic("doc", _topic(1, "first"))
        await repository.save_topic("doc", _topic("2.1", "second"))
        await repository.save_topic("other", _topic(1, "elsewhere"))
        await repository.save_topic("doc", _topic(1, "first, regenerated"))

        topics = await repository.get_topics("doc")
        async with session_maker() as db:
            row = await db.get(StudyTopic, ("doc", "2.1"))
        await engine.dispose()
        return topics, row

    topics, row = asyncio.run(run())

    assert [(t.id, t.summary) for t in topics] == [(1, "first, regenerated"), ("2.1", "second")]
    assert topics[0].quiz[0].answer == "Because."
    assert row.document_id == "doc"
    assert row.section_id == "2.1"


def test_delete_by_document_only_touches_that_document():
    async def run():
        engine, session_maker = await _session_maker()
        repository = SqlTopicRepository(session_maker)
        await repository.save_topic("doc", _topic(1, "a"))
        await repository.save_topic("doc", _topic(2, "b"))
        await repository.save_topic("keep", _topic(1, "c"))

        async with session_maker() as db:
            deleted = await topic_crud.delete_by_document(db, "doc")
        remaining = await repository.get_topics("doc"), await repository.get_topics("keep")
        await engine.dispose()
        return deleted, remaining

    deleted, (gone, kept) = asyncio.run(run())

    assert deleted == 2
    assert gone == []
    assert [t.summary for t in kept] == ["c"]


def test_ids_joined_by_underscore_do_not_collide():
    async def run():
        engine, session_maker = await _session_maker()
        repository = SqlTopicRepository(session_maker)
        await repository.save_topic("a", _topic("1_2", "doc a"))
        await repository.save_topic("a_1", _topic("2", "doc a_1"))
        topics = await repository.get_topics("a"), await repository.get_topics("a_1")
        await engine.dispose()
        return topics

    first, second = asyncio.run(run())

    assert [(t.id, t.summary) for t in first] == [("1_2", "doc a")]
    assert [(t.id, t.summary) for t in second] == [("2", "doc a_1")]
