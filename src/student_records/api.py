from fastapi import APIRouter

from student_records.modules.auth import router as auth_router
from student_records.modules.students.router import router as students_router
from student_records.modules.users.router import router as users_router

api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["Authentication"])

api_router.include_router(students_router, prefix="/students", tags=["Students"])

api_router.include_router(users_router, prefix="/users", tags=["Admin - Users"])
