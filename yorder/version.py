"""版本信息"""

__version__ = "0.1.0"
__author__ = "yorder contributors"
__description__ = "基于 SQLAlchemy 的分组稠密排序引擎"
