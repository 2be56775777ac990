"""
Students module - Student records.
"""

from student_records.modules.students.models import Student
from student_records.modules.students.repository import StudentRepository

__all__ = ["Student", "StudentRepository"]
