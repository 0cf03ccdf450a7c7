"""
Pytest 公共配置和 Fixtures

提供测试所需的公共资源：
- 数据库连接（SQLite 内存库）
- 数据库会话
- 临时文件
"""

import os
import tempfile
from typing import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool


# ==================== 基础 Fixtures ====================

@pytest.fixture(scope="session")
def temp_dir():
    """创建临时目录"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def temp_file(temp_dir):
    """创建临时文件的工厂函数"""
    created_files = []

    def _create_file(filename: str, content: str = "") -> str:
        filepath = os.path.join(temp_dir, filename)
        if os.path.dirname(filepath):
            os.makedirs(os.path.dirname(filepath), exist_ok=True)
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(content)
        created_files.append(filepath)
        return filepath

    yield _create_file

    for f in created_files:
        if os.path.exists(f):
            os.remove(f)


# ==================== 数据库 Fixtures ====================

@pytest.fixture(scope="function")
def memory_engine():
    """创建内存数据库引擎

    使用 StaticPool 和 check_same_thread=False 确保：
    1. 所有操作使用同一个连接（StaticPool）
    2. 允许跨线程访问（check_same_thread=False）
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(memory_engine) -> Generator[Session, None, None]:
    """创建数据库会话"""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=memory_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
