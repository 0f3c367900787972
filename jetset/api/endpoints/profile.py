from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from jetset.api.dependencies import get_db, require_user
from jetset.controllers.inquiry_controller import InquiryController
from jetset.controllers.profile_controller import ProfileController
from jetset.integrations.contracts.interfaces import AuthUser

api = APIRouter()
profile_api = api


@api.get("")
async def get_profile(user: AuthUser = Depends(require_user), db=Depends(get_db)):
    return {"success": True, "data": ProfileController(db).get_profile(user)}


@api.put("")
async def update_profile(
    payload: Dict[str, Any] = Body(...),
    user: AuthUser = Depends(require_user),
    db=Depends(get_db),
):
    profile = ProfileController(db).update_profile(user, payload)
    return {"success": True, "message": "Profile updated successfully", "data": profile}


@api.get("/trips")
async def my_trips(user: AuthUser = Depends(require_user), db=Depends(get_db)):
    inquiries = InquiryController(db).list_for_user(user)
    return {"success": True, "data": ProfileController(db).trips(inquiries)}
