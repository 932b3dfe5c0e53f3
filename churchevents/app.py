from datetime import date, datetime
from typing import List, Optional
import logging

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlmodel import SQLModel

from .browser import filter_events
from .calendar import generate_calendar_data, weeks
from .database import init_db, make_engine
from .display import event_icon_and_color, image_or_placeholder, render_markdown, video_thumbnail
from .errors import PermissionDenied, PersistenceError, ValidationError
from .events import ChurchEvent, SqlEventStore
from .forms import EventFormController
from .memberships import (
    SqlMembershipStore,
    UserChurchMembership,
    can_create_in,
    membership_for,
)
from .ports import StaticAuth
from .recurrence import RecurrenceType, recurrence_summary
from .settings import db_path
from .time_utils import ensure_tz, format_month, get_now


engine = make_engine(db_path())
init_db(engine)
event_store = SqlEventStore(engine)
membership_store = SqlMembershipStore(engine)

app = FastAPI()

logger = logging.getLogger(__name__)


class EventPayload(SQLModel):
    title: str = ""
    excerpt: str = ""
    time: Optional[datetime] = None
    author_name: str = ""
    event_location: str = ""
    image_url: Optional[str] = None
    video_link: Optional[str] = None
    is_recurring: bool = False
    recurrence_type: Optional[RecurrenceType] = None
    recurrence_interval: Optional[int] = None
    recurrence_end_date: Optional[datetime] = None
    recurrence_days_of_week: Optional[List[int]] = None


class QueryConfirmation:
    """Confirmation given up front through the ``confirm`` query parameter."""

    def __init__(self, confirmed: bool):
        self.confirmed = confirmed

    async def confirm(self, message: str) -> bool:
        return self.confirmed


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse({"field": exc.field, "reason": exc.reason}, status_code=400)


@app.exception_handler(PermissionDenied)
async def permission_denied_handler(request: Request, exc: PermissionDenied):
    return JSONResponse({"action": exc.action, "error": exc.reason}, status_code=403)


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError):
    return JSONResponse({"operation": exc.operation, "error": exc.message}, status_code=502)


def current_user(x_user_id: Optional[str] = Header(default=None)) -> str:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Sign in required")
    return x_user_id


def event_json(event: ChurchEvent) -> dict:
    data = event.model_dump(mode="json")
    if event.recurrence_days_of_week is not None:
        data["recurrence_days_of_week"] = sorted(event.recurrence_days_of_week)
    icon, color = event_icon_and_color(event.title)
    data.update(
        excerpt_html=str(render_markdown(event.excerpt)),
        recurrence_summary=recurrence_summary(event),
        icon=icon,
        color=color,
        image=image_or_placeholder(event.image_url),
        video_thumbnail=video_thumbnail(event.video_link),
    )
    return data


def apply_payload(controller: EventFormController, payload: EventPayload) -> None:
    form = controller.staged_form
    form = (
        form.with_title(payload.title)
        .with_excerpt(payload.excerpt)
        .with_author_name(payload.author_name)
        .with_event_location(payload.event_location)
        .with_image_url(payload.image_url)
        .with_video_link(payload.video_link)
    )
    if "time" in payload.model_fields_set:
        form = form.with_time(ensure_tz(payload.time))
    if payload.recurrence_type is not None:
        form = form.with_recurrence_type(payload.recurrence_type)
    if payload.recurrence_interval is not None:
        form = form.with_recurrence_interval(payload.recurrence_interval)
    if payload.recurrence_days_of_week is not None:
        form = form.with_recurrence_days(payload.recurrence_days_of_week)
    form = form.with_recurrence_end_date(ensure_tz(payload.recurrence_end_date))
    controller.staged_form = form.with_recurring(payload.is_recurring)


async def form_controller(user_id: str, confirmed: bool = False) -> EventFormController:
    memberships = await membership_store.list_churches_for_user(user_id)
    return EventFormController(
        event_store,
        StaticAuth(user_id),
        memberships=memberships,
        confirmation=QueryConfirmation(confirmed),
    )


async def require_membership(user_id: str, church_id: int) -> List[UserChurchMembership]:
    memberships = await membership_store.list_churches_for_user(user_id)
    if membership_for(memberships, church_id) is None:
        logger.warning("User %s is not a member of church %s", user_id, church_id)
        raise PermissionDenied("view", "You are not a member of this church.")
    return memberships


async def get_event_or_404(event_id: int) -> ChurchEvent:
    event = await event_store.get(event_id)
    if not event:
        raise HTTPException(status_code=404)
    return event


@app.get("/churches")
async def list_churches(user_id: str = Depends(current_user)):
    memberships = await membership_store.list_churches_for_user(user_id)
    return JSONResponse(
        [
            {
                "church_id": m.church_id,
                "church_name": m.church_name,
                "role": m.role.value if m.role else None,
                "can_create": m.can_create,
            }
            for m in memberships
        ]
    )


@app.get("/churches/{church_id}/events")
async def list_church_events(
    church_id: int, q: str = "", user_id: str = Depends(current_user)
):
    memberships = await require_membership(user_id, church_id)
    events = await event_store.query_by_church(church_id)
    return JSONResponse(
        {
            "can_create": can_create_in(memberships, church_id),
            "events": [event_json(e) for e in filter_events(events, q)],
        }
    )


@app.get("/churches/{church_id}/calendar/{year}/{month}")
async def church_calendar(
    church_id: int, year: int, month: int, user_id: str = Depends(current_user)
):
    try:
        anchor = date(year, month, 1)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid month")
    await require_membership(user_id, church_id)
    events = await event_store.query_by_church(church_id)
    days = generate_calendar_data(anchor, events, today=get_now().date())
    return JSONResponse(
        {
            "month": format_month(anchor),
            "weeks": [
                [
                    {
                        "date": day.date.isoformat(),
                        "day_of_month": day.day_of_month,
                        "day_of_week": day.day_of_week,
                        "is_current_month": day.is_current_month,
                        "is_today": day.is_today,
                        "events": [
                            {"id": e.id, "title": e.title, "time": e.time.isoformat()}
                            for e in day.events
                        ],
                    }
                    for day in week
                ]
                for week in weeks(days)
            ],
        }
    )


@app.post("/churches/{church_id}/events", status_code=201)
async def create_event(
    church_id: int, payload: EventPayload, user_id: str = Depends(current_user)
):
    controller = await form_controller(user_id)
    controller.open_create(church_id)
    apply_payload(controller, payload)
    event_id = await controller.submit_create()
    event = await get_event_or_404(event_id)
    return JSONResponse(event_json(event), status_code=201)


@app.put("/events/{event_id}")
async def update_event(
    event_id: int, payload: EventPayload, user_id: str = Depends(current_user)
):
    event = await get_event_or_404(event_id)
    controller = await form_controller(user_id)
    controller.open_edit(event)
    apply_payload(controller, payload)
    await controller.submit_update()
    return JSONResponse(event_json(await get_event_or_404(event_id)))


@app.delete("/events/{event_id}")
async def delete_event(
    event_id: int, confirm: bool = False, user_id: str = Depends(current_user)
):
    await get_event_or_404(event_id)
    controller = await form_controller(user_id, confirmed=confirm)
    if not await controller.submit_delete(event_id):
        return JSONResponse({"error": "Deletion not confirmed"}, status_code=409)
    logger.info("User %s deleted event %s", user_id, event_id)
    return JSONResponse({"ok": True})
