"""
数据库会话管理模块

排序事件依赖 flush 所在的事务，这里负责创建引擎和线程隔离的 session。

公开 API:
- db_manager: 数据库管理器单例
- init_database(): 初始化数据库连接
- get_engine(): 获取数据库引擎
- db_session_scope(): 事务上下文管理器（提交、回滚、清理）
- on_session_end(): 清理当前线程的 session
"""

import logging
import time
from contextlib import contextmanager
from typing import Any, Callable, Generator, Optional, Tuple

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from yorder.log import get_logger

_logger = get_logger("yorder.orm.session")

_NOT_INITIALIZED = "数据库未初始化，请先调用 init_database()"


__all__ = [
    'db_manager',
    'init_database',
    'get_engine',
    'db_session_scope',
    'on_session_end',
]


def _engine_options(database_url: str, config: Any) -> dict:
    """按数据库类型组装 create_engine 参数

    SQLite 内存库只能使用单连接（StaticPool），否则每个连接都是一个新的空库。
    """
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    if database_url.startswith("sqlite"):
        return {
            "connect_args": {"check_same_thread": False},
            "pool_pre_ping": getattr(config, "pool_pre_ping", True),
        }
    return {
        "pool_pre_ping": getattr(config, "pool_pre_ping", True),
        "pool_size": getattr(config, "pool_size", 5),
        "max_overflow": getattr(config, "max_overflow", 10),
        "pool_timeout": getattr(config, "pool_timeout", 30),
        "pool_recycle": getattr(config, "pool_recycle", 3600),
    }


def _enable_sql_timing(engine: Engine) -> None:
    """在 sqlalchemy.engine 日志器上记录每条语句的耗时"""
    sql_logger = logging.getLogger("sqlalchemy.engine")

    @event.listens_for(engine, "before_cursor_execute")
    def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        conn.info.setdefault('query_start_time', []).append(time.time())

    @event.listens_for(engine, "after_cursor_execute")
    def after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        total_time = time.time() - conn.info['query_start_time'].pop()
        sql_logger.debug(f"[执行耗时: {total_time*1000:.2f}ms]")


class DatabaseManager:
    """数据库管理器（单例）

    使用示例:
        from yorder.orm import db_manager

        db_manager.init("sqlite:///./menus.db")
        session = db_manager.get_session()
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._engine = None
            cls._instance._session_scope = None
        return cls._instance

    @property
    def engine(self) -> Engine:
        """数据库引擎

        Raises:
            RuntimeError: 数据库未初始化
        """
        if self._engine is None:
            raise RuntimeError(_NOT_INITIALIZED)
        return self._engine

    @property
    def session_scope(self) -> scoped_session:
        if self._session_scope is None:
            raise RuntimeError(_NOT_INITIALIZED)
        return self._session_scope

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    def init(
        self,
        database_url: Optional[str] = None,
        config: Any = None,
        logging_config: Any = None,
        scopefunc: Callable = None,
        auto_setup_query: bool = True,
    ) -> Tuple[Engine, scoped_session]:
        """初始化数据库连接

        Args:
            database_url: 数据库连接URL，提供 config 时以 config.url 为准
            config: 数据库配置（DatabaseSettings）
            logging_config: 日志配置（LoggingSettings），sql_log_enabled 为真时记录 SQL 耗时
            scopefunc: session 作用域函数，默认按线程隔离
            auto_setup_query: 是否设置 CoreModel.query

        Returns:
            (engine, session_scope)

        使用示例:
            init_database("sqlite:///./menus.db")
            init_database(config=settings.database, logging_config=settings.logging)
        """
        if config is not None and getattr(config, "url", None):
            database_url = config.url
        if not database_url:
            raise ValueError("database_url 是必需的，请通过参数或 config 提供")

        sql_log_enabled = bool(getattr(logging_config, "sql_log_enabled", False))
        echo = "debug" if sql_log_enabled else bool(getattr(config, "echo", False))

        self.dispose()
        self._engine = create_engine(database_url, echo=echo, **_engine_options(database_url, config))
        _logger.info(f"数据库引擎创建成功: {self._engine.url!r}")

        if sql_log_enabled:
            _enable_sql_timing(self._engine)
            _logger.info("SQL执行时间记录已启用")

        session_maker = sessionmaker(autocommit=False, autoflush=True, bind=self._engine)
        self._session_scope = scoped_session(session_maker, scopefunc=scopefunc)

        if auto_setup_query:
            # 延迟导入避免循环依赖
            from .core_model import CoreModel
            CoreModel.query = self._session_scope.query_property()

        return self._engine, self._session_scope

    def get_session(self) -> Session:
        """当前作用域的 session"""
        return self.session_scope()

    def cleanup(self):
        """移除当前作用域的 session（幂等）"""
        if self._session_scope is not None:
            self._session_scope.remove()

    def dispose(self):
        """释放引擎并重置状态"""
        self.cleanup()
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._session_scope = None


db_manager = DatabaseManager()


def init_database(
    database_url: Optional[str] = None,
    config: Any = None,
    logging_config: Any = None,
    scopefunc: Callable = None,
    auto_setup_query: bool = True,
) -> Tuple[Engine, scoped_session]:
    """初始化数据库连接，db_manager.init() 的便捷包装"""
    return db_manager.init(
        database_url=database_url,
        config=config,
        logging_config=logging_config,
        scopefunc=scopefunc,
        auto_setup_query=auto_setup_query,
    )


def get_engine() -> Engine:
    """获取数据库引擎

    Raises:
        RuntimeError: 数据库未初始化
    """
    return db_manager.engine


def on_session_end():
    db_manager.cleanup()


@contextmanager
def db_session_scope(auto_commit: bool = True) -> Generator[Session, None, None]:
    """session 上下文管理器

    退出时提交，异常时回滚并继续抛出，最后清理 session。
    一次调序或换组的全部平移都在这个事务中完成。

    使用示例:
        with db_session_scope() as session:
            menu = Menu.get(1)
            menu.move_to(0)
    """
    session = db_manager.get_session()
    try:
        yield session
        if auto_commit:
            session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        on_session_end()
