"""配置类测试

测试各配置类的默认值、环境变量前缀以及与 SortConfig 的衔接
"""

import pytest

from yorder.config import (
    AppSettings,
    DatabaseSettings,
    LoggingSettings,
    SortableSettings,
)
from yorder.orm.sortable import SortConfig


class TestAppSettings:
    """AppSettings 测试"""

    def test_default_values(self):
        """测试默认嵌套配置值"""
        settings = AppSettings()

        assert isinstance(settings.database, DatabaseSettings)
        assert isinstance(settings.logging, LoggingSettings)
        assert isinstance(settings.sortable, SortableSettings)

    def test_custom_settings(self):
        """测试继承自定义配置"""
        from pydantic import Field

        class MySettings(AppSettings):
            app_name: str = Field(default="Menu Service")

        settings = MySettings()
        assert settings.app_name == "Menu Service"
        assert settings.sortable.group_field == "parent_id"


class TestSortableSettings:
    """SortableSettings 测试"""

    def test_default_values(self):
        settings = SortableSettings()
        assert settings.group_field == "parent_id"
        assert settings.sort_field == "sort_order"
        assert settings.id_field == "id"
        assert settings.deleted_field == "deleted_at"
        assert settings.lock_groups is False

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("YORDER_SORT_GROUP_FIELD", "category_id")
        monkeypatch.setenv("YORDER_SORT_LOCK_GROUPS", "true")

        settings = SortableSettings()
        assert settings.group_field == "category_id"
        assert settings.lock_groups is True

    def test_to_sort_config(self):
        settings = SortableSettings(group_field="category_id", lock_groups=True)
        config = SortConfig.from_settings(settings, soft_delete=True)

        assert config.group_field == "category_id"
        assert config.sort_field == "sort_order"
        assert config.soft_delete is True
        assert config.lock_groups is True


class TestDatabaseSettings:
    """DatabaseSettings 测试"""

    def test_default_values(self):
        settings = DatabaseSettings()
        assert settings.url == ""
        assert settings.echo is False
        assert settings.pool_size == 5

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("YORDER_DB_URL", "sqlite:///./menus.db")
        assert DatabaseSettings().url == "sqlite:///./menus.db"


class TestLoggingSettings:
    """LoggingSettings 测试"""

    def test_default_values(self):
        settings = LoggingSettings()
        assert settings.level == "INFO"
        assert settings.file_path == ""
        assert settings.parsed_file_max_bytes == 10 * 1024 * 1024
        assert settings.sql_log_enabled is False

    @pytest.mark.parametrize("level", ["DEBUG", "WARNING"])
    def test_env_level(self, monkeypatch, level):
        monkeypatch.setenv("YORDER_LOG_LEVEL", level)
        assert LoggingSettings().level == level


class TestSortableSettingsScope:
    """SortableSettings 只作用于显式引擎"""

    def test_env_does_not_change_mixin_models(self, monkeypatch):
        from yorder.orm import SortableMixin

        class Banner(SortableMixin):
            __sort_lock_groups__ = True

        monkeypatch.setenv("YORDER_SORT_GROUP_FIELD", "category_id")
        monkeypatch.setenv("YORDER_SORT_LOCK_GROUPS", "false")

        assert SortConfig.from_settings(SortableSettings()).group_field == "category_id"
        config = Banner.sort_config()
        assert config.group_field == "parent_id"
        assert config.lock_groups is True
        assert config.soft_delete is False
