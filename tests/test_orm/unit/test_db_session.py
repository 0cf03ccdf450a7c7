"""数据库会话管理测试

测试 init_database / get_engine / db_session_scope，以及依赖全局 session 的
CoreModel 增删查方法
"""

import logging
from typing import Optional

import pytest
from sqlalchemy import Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.pool import StaticPool

from yorder.config import DatabaseSettings, LoggingSettings
from yorder.orm import (
    Base,
    CoreModel,
    SortFieldMixin,
    SortableMixin,
    db_manager,
    db_session_scope,
    get_engine,
    init_database,
    supports_soft_delete,
)


class SessionNote(CoreModel, SortFieldMixin, SortableMixin):
    """便签 - 按看板分组"""
    __tablename__ = "test_session_note"
    __table_args__ = {'extend_existing': True}
    __sort_group_by__ = "board_id"

    board_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    title: Mapped[str] = mapped_column(String(100))


@pytest.fixture
def restore_query():
    """测试结束后释放全局引擎并还原 CoreModel.query"""
    previous = CoreModel.query
    db_manager.dispose()
    yield
    db_manager.dispose()
    CoreModel.query = previous


@pytest.fixture
def database(restore_query):
    engine, session_scope = init_database("sqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    yield session_scope


class TestInitDatabase:
    """init_database 测试"""

    def test_get_engine_before_init(self, restore_query):
        assert db_manager.is_initialized is False
        with pytest.raises(RuntimeError):
            get_engine()

    def test_missing_url(self, restore_query):
        with pytest.raises(ValueError):
            init_database()

    def test_memory_database(self, database):
        engine = get_engine()
        assert db_manager.is_initialized
        assert isinstance(engine.pool, StaticPool)
        assert CoreModel.query is not None
        assert SessionNote.query.session is database()

    def test_init_from_config(self, restore_query):
        engine, _ = init_database(config=DatabaseSettings(url="sqlite:///:memory:"))
        assert get_engine() is engine
        assert str(engine.url) == "sqlite:///:memory:"

    def test_skip_query_setup(self, restore_query):
        CoreModel.query = None
        init_database("sqlite:///:memory:", auto_setup_query=False)
        assert CoreModel.query is None

    def test_sql_timing_logged(self, restore_query, caplog):
        engine, _ = init_database(
            "sqlite:///:memory:",
            logging_config=LoggingSettings(sql_log_enabled=True),
        )
        caplog.set_level(logging.DEBUG, logger="sqlalchemy.engine")
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        assert "执行耗时" in caplog.text


class TestDbSessionScope:
    """db_session_scope 测试"""

    def test_commit_on_success(self, database):
        with db_session_scope() as session:
            session.add(SessionNote(title="a", board_id=1))
            session.add(SessionNote(title="b", board_id=1))

        notes = SessionNote.get_sorted(1)
        assert [(n.title, n.sort_order) for n in notes] == [("a", 0), ("b", 1)]

    def test_rollback_on_exception(self, database):
        with pytest.raises(RuntimeError):
            with db_session_scope() as session:
                session.add(SessionNote(title="a", board_id=1))
                session.flush()
                raise RuntimeError("中断")

        assert SessionNote.get_all() == []

    def test_no_auto_commit(self, database):
        with db_session_scope(auto_commit=False) as session:
            session.add(SessionNote(title="a", board_id=1))
            session.flush()

        assert SessionNote.get_all() == []

    def test_reorder_inside_scope(self, database):
        with db_session_scope():
            SessionNote.save_all([SessionNote(title=t, board_id=1) for t in "abc"])

        with db_session_scope():
            SessionNote.query.filter_by(title="c").first().move_to(0)

        assert [n.title for n in SessionNote.get_sorted(1)] == ["c", "a", "b"]


class TestCoreModelCrud:
    """CoreModel 增删查测试"""

    def test_save_all_and_get(self, database):
        notes = SessionNote.save_all(
            [SessionNote(title=t, board_id=2) for t in "xyz"], commit=True
        )
        assert [n.sort_order for n in notes] == [0, 1, 2]

        fetched = SessionNote.get(notes[1].id)
        assert fetched.title == "y"
        assert SessionNote.get(999) is None
        assert len(SessionNote.get_all()) == 3

    def test_save_all_empty(self, database):
        assert SessionNote.save_all([]) == []

    def test_system_fields_ignored(self, database):
        note = SessionNote(id=100, title="a", board_id=1)
        note.save(commit=True)
        assert note.id != 100
        assert note.created_at is not None

    def test_hard_delete_without_soft_delete(self, database):
        assert supports_soft_delete(SessionNote) is False
        notes = SessionNote.save_all(
            [SessionNote(title=t, board_id=1) for t in "ab"], commit=True
        )
        notes[0].delete(commit=True)

        assert [(n.title, n.sort_order) for n in SessionNote.get_all()] == [("b", 0)]
