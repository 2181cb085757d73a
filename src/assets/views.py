"""JSON views for the assets app."""

import json

from django_ratelimit.decorators import ratelimit

from django.conf import settings
from django.contrib.auth.decorators import login_required
from django.core.exceptions import ValidationError
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST

from .exceptions import LifecycleError
from .models import Asset
from .services.assignment import assign, unassign
from .services.bulk import bulk_assign, group_by_type, list_available, list_holding
from .services.directory import find_location
from .services.intake import intake_rows
from .services.permissions import (
    can_archive_assets,
    can_assign_assets,
    can_import_assets,
    can_transition_asset,
    is_admin,
)
from .services.records import asset_history, create_asset, normalize_asset_type
from .services.rows import detect_format, parse_rows
from .services.state import (
    archive_asset,
    get_asset,
    normalize_state,
    release_from_holding,
    transition_state,
)


# --- Helpers ---


def _user_json(user):
    if user is None:
        return None
    return {
        "id": user.pk,
        "username": user.username,
        "display_name": user.get_display_name(),
    }


def serialize_asset(asset: Asset) -> dict:
    return {
        "id": str(asset.pk),
        "asset_number": asset.asset_number,
        "type": asset.type,
        "state": asset.state,
        "serial_number": asset.serial_number,
        "description": asset.description,
        "location": asset.location.name if asset.location_id else None,
        "assigned_user": _user_json(asset.assigned_user),
        "purchase_price": (
            str(asset.purchase_price)
            if asset.purchase_price is not None
            else None
        ),
        "supplier": asset.supplier,
        "is_archived": asset.is_archived,
        "allowed_transitions": asset.allowed_transitions,
        "updated_at": asset.updated_at.isoformat(),
    }


def serialize_event(event) -> dict:
    return {
        "id": event.pk,
        "action": event.action,
        "previous_state": event.previous_state,
        "new_state": event.new_state,
        "actor": _user_json(event.actor),
        "user_bound": _user_json(event.user_bound),
        "user_unbound": _user_json(event.user_unbound),
        "reason": event.reason,
        "timestamp": event.timestamp.isoformat(),
    }


def _error(code, message, status):
    return JsonResponse(
        {"success": False, "error": code, "message": message}, status=status
    )


def _lifecycle_error(exc: LifecycleError):
    return _error(exc.code, exc.message, exc.status)


def _forbidden():
    return _error(
        "forbidden", "You do not have permission to do this.", 403
    )


def _payload(request) -> dict:
    """Request body as a dict, from JSON or form data."""
    if request.content_type == "application/json":
        try:
            data = json.loads(request.body or b"{}")
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise ValidationError(
                "Request body is not valid JSON.", code="invalid_json"
            ) from None
        if not isinstance(data, dict):
            raise ValidationError(
                "Request body must be a JSON object.", code="invalid_json"
            )
        return data
    return request.POST.dict()


def _bad_request(exc: ValidationError):
    code = getattr(exc, "code", None) or "invalid"
    return _error(code, exc.messages[0], 400)


def _bulk_rate(group, request):
    return settings.BULK_ASSIGN_RATE


# --- Queries ---


@login_required
@require_GET
def available_assets(request):
    """Assets open for assignment, optionally filtered by ?type=."""
    asset_type = request.GET.get("type", "").strip()
    try:
        if asset_type:
            asset_type = normalize_asset_type(asset_type)
    except LifecycleError as exc:
        return _lifecycle_error(exc)
    assets = list(list_available(asset_type or None))
    return JsonResponse(
        {
            "success": True,
            "count": len(assets),
            "assets": [serialize_asset(a) for a in assets],
            "groups": {
                key: [str(a.pk) for a in members]
                for key, members in group_by_type(assets).items()
            },
        }
    )


@login_required
@require_GET
def holding_assets(request):
    if not is_admin(request.user):
        return _forbidden()
    assets = list(list_holding())
    return JsonResponse(
        {
            "success": True,
            "count": len(assets),
            "assets": [serialize_asset(a) for a in assets],
        }
    )


@login_required
@require_GET
def asset_detail(request, pk):
    try:
        asset = get_asset(pk)
    except LifecycleError as exc:
        return _lifecycle_error(exc)
    return JsonResponse({"success": True, "asset": serialize_asset(asset)})


@login_required
@require_GET
def asset_history_view(request, pk):
    try:
        events = list(asset_history(pk))
    except LifecycleError as exc:
        return _lifecycle_error(exc)
    return JsonResponse(
        {"success": True, "events": [serialize_event(e) for e in events]}
    )


# --- Mutations ---


@login_required
@require_POST
def asset_create(request):
    """Manual entry of a single asset; it starts in AVAILABLE."""
    if not can_assign_assets(request.user):
        return _forbidden()
    try:
        data = _payload(request)
    except ValidationError as exc:
        return _bad_request(exc)

    location = None
    if data.get("location"):
        location = find_location(data["location"])
        if location is None:
            return _error(
                "invalid_value",
                f"Location '{data['location']}' does not exist.",
                400,
            )
    try:
        asset = create_asset(
            asset_type=data.get("type"),
            serial_number=data.get("serial_number"),
            description=data.get("description"),
            asset_number=data.get("asset_number") or "",
            location=location,
            purchase_price=data.get("purchase_price"),
            supplier=data.get("supplier") or "",
            notes=data.get("notes") or "",
            actor=request.user,
        )
    except LifecycleError as exc:
        return _lifecycle_error(exc)
    return JsonResponse(
        {"success": True, "asset": serialize_asset(asset)}, status=201
    )


@login_required
@require_POST
def asset_transition(request, pk):
    """Move an asset to ``state``; ``user_id`` is needed for ISSUED/SIGNED_OUT.

    Releasing from HOLDING also accepts ``type`` and ``asset_number``.
    """
    try:
        data = _payload(request)
    except ValidationError as exc:
        return _bad_request(exc)
    try:
        new_state = normalize_state(data.get("state"))
        asset = get_asset(pk)
        if not can_transition_asset(request.user, asset):
            return _forbidden()
        if asset.state == Asset.HOLDING and new_state == Asset.AVAILABLE:
            asset_type = data.get("type")
            asset = release_from_holding(
                pk,
                request.user,
                reason=data.get("reason") or "",
                asset_number=data.get("asset_number") or "",
                asset_type=(
                    normalize_asset_type(asset_type) if asset_type else None
                ),
            )
        else:
            asset = transition_state(
                pk,
                new_state,
                request.user,
                user_id=data.get("user_id") or None,
                reason=data.get("reason") or "",
            )
    except LifecycleError as exc:
        return _lifecycle_error(exc)
    return JsonResponse({"success": True, "asset": serialize_asset(asset)})


@login_required
@require_POST
def asset_assign(request, pk):
    if not can_assign_assets(request.user):
        return _forbidden()
    try:
        data = _payload(request)
    except ValidationError as exc:
        return _bad_request(exc)
    try:
        asset = assign(
            pk,
            data.get("user_id"),
            request.user,
            reason=data.get("reason") or "",
        )
    except LifecycleError as exc:
        return _lifecycle_error(exc)
    return JsonResponse({"success": True, "asset": serialize_asset(asset)})


@login_required
@require_POST
def asset_unassign(request, pk):
    if not can_assign_assets(request.user):
        return _forbidden()
    try:
        data = _payload(request)
    except ValidationError as exc:
        return _bad_request(exc)
    try:
        asset = unassign(pk, request.user, reason=data.get("reason") or "")
    except LifecycleError as exc:
        return _lifecycle_error(exc)
    return JsonResponse({"success": True, "asset": serialize_asset(asset)})


@login_required
@require_POST
def asset_archive(request, pk):
    if not can_archive_assets(request.user):
        return _forbidden()
    try:
        data = _payload(request)
    except ValidationError as exc:
        return _bad_request(exc)
    try:
        asset = archive_asset(pk, request.user, reason=data.get("reason") or "")
    except LifecycleError as exc:
        return _lifecycle_error(exc)
    return JsonResponse({"success": True, "asset": serialize_asset(asset)})


# --- Bulk ---


@login_required
@require_POST
@ratelimit(key="user", rate=_bulk_rate, method="POST", block=True)
def bulk_assign_view(request):
    """Assign the selected assets to one user, reporting each failure."""
    if not can_assign_assets(request.user):
        return _forbidden()
    try:
        data = _payload(request)
    except ValidationError as exc:
        return _bad_request(exc)
    asset_ids = data.get("asset_ids")
    if asset_ids is None and request.content_type != "application/json":
        asset_ids = request.POST.getlist("asset_ids")
    if not isinstance(asset_ids, list):
        return _error("invalid", "asset_ids must be a list.", 400)

    result = bulk_assign(asset_ids, data.get("user_id"), request.user)
    available = list(result["available"])
    return JsonResponse(
        {
            "success": not result["failed"],
            "succeeded": [serialize_asset(a) for a in result["succeeded"]],
            "failed": result["failed"],
            "available": [serialize_asset(a) for a in available],
            "message": (
                f"{len(result['succeeded'])} assigned, "
                f"{len(result['failed'])} failed."
            ),
        }
    )


@login_required
@require_POST
@ratelimit(key="user", rate=_bulk_rate, method="POST", block=True)
def intake_view(request):
    """Import rows into HOLDING from JSON ``{"rows": [...]}`` or a file."""
    if not can_import_assets(request.user):
        return _forbidden()

    try:
        upload = request.FILES.get("file")
        if upload is not None:
            rows = parse_rows(upload.read(), detect_format(upload.name))
        else:
            rows = _payload(request).get("rows")
            if not isinstance(rows, list) or not all(
                isinstance(row, dict) for row in rows
            ):
                raise ValidationError(
                    "rows must be a list of objects.", code="invalid"
                )
    except ValidationError as exc:
        return _bad_request(exc)

    if len(rows) > settings.INTAKE_MAX_ROWS:
        return _error(
            "too_many_rows",
            f"At most {settings.INTAKE_MAX_ROWS} rows can be imported at once.",
            400,
        )

    report = intake_rows(rows, actor=request.user)
    return JsonResponse(
        {
            "success": True,
            "created": [serialize_asset(a) for a in report["created"]],
            "rejected": report["rejected"],
            "message": (
                f"{len(report['created'])} imported into holding, "
                f"{len(report['rejected'])} rejected."
            ),
        }
    )
