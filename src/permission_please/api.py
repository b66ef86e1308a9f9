from fastapi import APIRouter

from permission_please.modules.reminders import router as reminders_router

api_router = APIRouter()

api_router.include_router(reminders_router, prefix="/cron", tags=["Cron"])
