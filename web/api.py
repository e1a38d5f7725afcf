"""API route handlers for Timin"""

import math
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Response, status

from timin.container import Container
from timin.models.user import User
from timin.utils.exceptions import Forbidden, Unauthorized, UserNotFound
from timin.utils.logger import get_logger

from .auth_deps import clear_auth_cookie, get_container, get_optional_user, issue_session
from .models import CreateShiftRequest, HireRequest, LoginRequest, RegisterRequest, ReviewRequest

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["api"])

OK = {"ok": True}


# Authentication & session

@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    response: Response,
    payload: Optional[RegisterRequest] = None,
    container: Container = Depends(get_container),
) -> Dict[str, Any]:
    """Create a worker or employer account and sign it in"""
    payload = payload or RegisterRequest()
    user = container.users.register(payload.email, payload.password, payload.role, payload.abn)
    issue_session(response, container, user)
    return user.public()


@router.post("/login")
def login(
    response: Response,
    payload: Optional[LoginRequest] = None,
    container: Container = Depends(get_container),
) -> Dict[str, Any]:
    payload = payload or LoginRequest()
    user = container.users.authenticate(payload.email, payload.password)
    issue_session(response, container, user)
    logger.info("User logged in", user_id=user.id)
    return user.public()


@router.post("/logout")
def logout(response: Response, container: Container = Depends(get_container)) -> Dict[str, Any]:
    """Drop the cookie. Tokens are stateless, so nothing is revoked server-side."""
    clear_auth_cookie(response, container)
    return OK


@router.get("/me")
def me(user: Optional[User] = Depends(get_optional_user)) -> Dict[str, Any]:
    if user is None:
        raise Unauthorized("Not authenticated")
    return {**user.public(), "profile": user.profile_record()}


@router.put("/me/profile")
def update_profile(
    payload: Optional[Dict[str, Any]] = Body(None),
    user: Optional[User] = Depends(get_optional_user),
    container: Container = Depends(get_container),
) -> Dict[str, Any]:
    if user is None:
        raise Forbidden("Login required")
    profile = container.users.update_profile(user.id, user.role, payload or {})
    return {"ok": True, "profile": profile}


@router.get("/profile/{user_id}")
def public_profile(user_id: str, container: Container = Depends(get_container)) -> Dict[str, Any]:
    target = container.users.find_by_id(user_id)
    if target is None:
        raise UserNotFound(f"User {user_id} not found")
    summary = container.reviews.for_user(user_id)
    average = math.floor(summary["averageRating"] * 10 + 0.5) / 10 if summary["count"] else 0
    return {
        **target.public(),
        "profile": target.profile_record(),
        "rating": {"average": average, "count": summary["count"]},
    }


# Shifts

@router.get("/shifts")
def list_shifts(
    mine: Optional[str] = None,
    user: Optional[User] = Depends(get_optional_user),
    container: Container = Depends(get_container),
) -> List[Dict[str, Any]]:
    shifts = container.shifts.list(user, mine_only=mine == "true")
    return [s.to_record() for s in shifts]


@router.post("/shifts", status_code=status.HTTP_201_CREATED)
def create_shift(
    payload: Optional[CreateShiftRequest] = None,
    user: Optional[User] = Depends(get_optional_user),
    container: Container = Depends(get_container),
) -> Dict[str, Any]:
    payload = payload or CreateShiftRequest()
    return container.shifts.create(user, payload.to_spec()).to_record()


@router.post("/shifts/{shift_id}/apply")
def apply_to_shift(
    shift_id: str,
    user: Optional[User] = Depends(get_optional_user),
    container: Container = Depends(get_container),
) -> Dict[str, Any]:
    container.shifts.apply(shift_id, user)
    return OK


@router.post("/shifts/{shift_id}/hire")
def hire_worker(
    shift_id: str,
    payload: Optional[HireRequest] = None,
    user: Optional[User] = Depends(get_optional_user),
    container: Container = Depends(get_container),
) -> Dict[str, Any]:
    payload = payload or HireRequest()
    container.shifts.hire(shift_id, user, payload.worker_id)
    return OK


@router.post("/shifts/{shift_id}/checkin")
def checkin(
    shift_id: str,
    user: Optional[User] = Depends(get_optional_user),
    container: Container = Depends(get_container),
) -> Dict[str, Any]:
    container.shifts.checkin(shift_id, user)
    return OK


@router.post("/shifts/{shift_id}/checkout")
def checkout(
    shift_id: str,
    user: Optional[User] = Depends(get_optional_user),
    container: Container = Depends(get_container),
) -> Dict[str, Any]:
    container.shifts.checkout(shift_id, user)
    return OK


# Reviews

@router.post("/reviews", status_code=status.HTTP_201_CREATED)
def submit_review(
    payload: Optional[ReviewRequest] = None,
    user: Optional[User] = Depends(get_optional_user),
    container: Container = Depends(get_container),
) -> Dict[str, Any]:
    payload = payload or ReviewRequest()
    review = container.reviews.submit(
        payload.shift_id, user, payload.reviewee_id, payload.rating, payload.comment
    )
    return review.to_record()


@router.get("/reviews/user/{user_id}")
def reviews_for_user(user_id: str, container: Container = Depends(get_container)) -> Dict[str, Any]:
    summary = container.reviews.for_user(user_id)
    return {
        "reviews": [r.to_record() for r in summary["reviews"]],
        "avgRating": summary["averageRating"],
        "count": summary["count"],
    }


@router.get("/reviews/shift/{shift_id}")
def reviews_for_shift(shift_id: str, container: Container = Depends(get_container)) -> List[Dict[str, Any]]:
    return [r.to_record() for r in container.reviews.for_shift(shift_id)]
