from college_events.db.base import Base, TimestampMixin

__all__ = ["Base", "TimestampMixin"]
