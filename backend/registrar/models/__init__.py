from registrar.models.student import Student

__all__ = ["Student"]
