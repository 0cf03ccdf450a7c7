"""ID模型基类

提供声明基类 Base 和自增整数主键。

使用说明：
    IdModel 是 CoreModel 的父类，只负责主键。
    一般情况下应该使用 CoreModel，而不是直接使用 IdModel。
"""

from sqlalchemy import Integer
from sqlalchemy.orm import Mapped, declarative_base, mapped_column


# 声明基类
Base = declarative_base()


class IdModel(Base):
    """ID模型基类

    使用示例:
        class Category(IdModel):
            __tablename__ = "category"
            name = mapped_column(String(50))
    """
    __abstract__ = True

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, comment="主键ID")


__all__ = [
    "Base",
    "IdModel",
]
