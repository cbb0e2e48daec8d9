"""Routes for the group blueprint."""

from __future__ import annotations

import secrets
from typing import Any

from firebase_admin import firestore
from flask import (
    current_app,
    flash,
    g,
    jsonify,
    redirect,
    render_template,
    request,
    session,
    url_for,
)

from santadraw.auth.decorators import login_required
from santadraw.constants import (
    MAX_OPEN_DRAW_TOKENS,
    SESSION_DRAW_TOKENS,
    SESSION_GROUP_NOTICES,
    SESSION_SELECTED_GROUP,
)
from santadraw.errors import AppError, StoreUnavailable

from . import bp
from .directory import GroupDirectory
from .forms import DeleteGroupForm, DrawForm, GroupForm, JoinForm
from .models import CustomField, member_roster, visible_to
from .services import (
    DrawEngine,
    GroupLifecycle,
    MembershipService,
    assignment_for,
    recipient_answers,
)
from .store import GroupStore


def _store() -> GroupStore:
    return GroupStore(firestore.client(), current_app.config["GROUPS_COLLECTION"])


def _load_directory(store: GroupStore) -> GroupDirectory:
    """Rebuild the user's directory, restoring selection and notices."""
    notices = {
        kind: tuple(value)
        for kind, value in (session.get(SESSION_GROUP_NOTICES) or {}).items()
    }
    directory = GroupDirectory(
        store, selected_id=session.get(SESSION_SELECTED_GROUP), notices=notices
    )
    directory.refresh(g.user.uid)
    return directory


def _save_directory(directory: GroupDirectory) -> None:
    session[SESSION_SELECTED_GROUP] = directory.selected_id
    session[SESSION_GROUP_NOTICES] = {
        kind: list(value) for kind, value in directory.notices.items()
    }


def _draw_tokens(group_id: str) -> tuple[dict[str, Any], dict[str, list[str]]]:
    tokens = dict(session.get(SESSION_DRAW_TOKENS) or {})
    entry = tokens.get(group_id) or {}
    return tokens, {
        "open": list(entry.get("open") or []),
        "used": list(entry.get("used") or []),
    }


def _issue_draw_token(group_id: str) -> str:
    """Add a token for one rendered draw button; older renders stay valid."""
    tokens, entry = _draw_tokens(group_id)
    token = secrets.token_urlsafe(16)
    entry["open"] = (entry["open"] + [token])[-MAX_OPEN_DRAW_TOKENS:]
    tokens[group_id] = entry
    session[SESSION_DRAW_TOKENS] = tokens
    return token


def _consume_draw_token(group_id: str, token: str | None) -> str:
    """Spend ``token``. Returns "ok", "used" or "expired"."""
    tokens, entry = _draw_tokens(group_id)
    if not token:
        return "expired"
    if any(secrets.compare_digest(token, t) for t in entry["used"]):
        return "used"
    if not any(secrets.compare_digest(token, t) for t in entry["open"]):
        return "expired"
    entry["open"] = [t for t in entry["open"] if t != token]
    entry["used"] = (entry["used"] + [token])[-MAX_OPEN_DRAW_TOKENS:]
    tokens[group_id] = entry
    session[SESSION_DRAW_TOKENS] = tokens
    return "ok"


def _join_responses(fields: list[CustomField]) -> dict[str, str]:
    return {f["id"]: request.form.get(f"response-{f['id']}", "") for f in fields}


def _render_dashboard(
    directory: GroupDirectory,
    create_form: GroupForm | None = None,
    join_form: JoinForm | None = None,
    join_fields: list[CustomField] | None = None,
    join_responses: dict[str, str] | None = None,
    status: int = 200,
) -> Any:
    user = g.user
    group = directory.selected_group
    context: dict[str, Any] = {
        "groups": directory.groups,
        "groups_error": directory.error.message if directory.error else None,
        "selected_group": group,
        "notices": directory.notices,
        "create_form": create_form or GroupForm(),
        "join_form": join_form or JoinForm(),
        "join_fields": join_fields or [],
        "join_responses": join_responses or {},
        "current_user": user,
    }
    if group is not None:
        context["roster"] = member_roster(group)
        context["my_assignment"] = assignment_for(group, user.uid)
        context["recipient_answers"] = recipient_answers(group, user.uid)
        context["is_organizer"] = group["ownerId"] == user.uid
        if context["is_organizer"]:
            draw_form = DrawForm()
            draw_form.token.data = _issue_draw_token(group["id"])
            context["draw_form"] = draw_form
            context["delete_form"] = DeleteGroupForm()
    return render_template("groups.html", **context), status


@bp.route("/", methods=["GET"])
@login_required
def dashboard():
    """Show the user's groups, the selected group and the create/join forms."""
    directory = _load_directory(_store())
    directory.select_group(request.args.get("selected") or directory.selected_id)
    _save_directory(directory)

    # Share links look like /group/?code=<id> and prefill the join form.
    join_form = JoinForm()
    join_fields: list[CustomField] = []
    code = request.args.get("code")
    if code:
        join_form.code.data = code
        join_fields = MembershipService.load_join_schema(
            directory.store, code, current_app.config["JOIN_CODE_MIN_LENGTH"]
        )
    return _render_dashboard(directory, join_form=join_form, join_fields=join_fields)


@bp.route("/feed", methods=["GET"])
@login_required
def feed():
    """JSON view of the directory for clients that poll for changes."""
    directory = _load_directory(_store())
    directory.select_group(request.args.get("selected") or directory.selected_id)
    state = directory.to_dict()
    state["groups"] = [visible_to(group, g.user.uid) for group in state["groups"]]
    return jsonify(state), 503 if directory.error else 200


@bp.route("/join/schema", methods=["GET"])
@login_required
def join_schema():
    """Custom fields the user must answer to join the group at ?code=."""
    fields = MembershipService.load_join_schema(
        _store(),
        request.args.get("code"),
        current_app.config["JOIN_CODE_MIN_LENGTH"],
    )
    return jsonify({"fields": fields})


@bp.route("/create", methods=["POST"])
@login_required
def create_group():
    """Create a new group owned by the current user."""
    store = _store()
    form = GroupForm()
    if form.validate_on_submit():
        try:
            group_id = GroupLifecycle.create(
                store,
                g.user,
                form.name.data,
                form.description.data,
                [entry.data for entry in form.custom_fields],
            )
        except StoreUnavailable as e:
            current_app.logger.error(f"Failed to create group: {e.__cause__ or e}")
            flash("Unable to create that group. Please try again.", "danger")
        except AppError as e:
            current_app.logger.warning(f"Group creation rejected: {e.message}")
            flash(e.message, "danger")
        else:
            flash("Group created! Share the join code with your Santas.", "success")
            directory = _load_directory(store)
            directory.select_group(group_id)
            _save_directory(directory)
            return redirect(url_for(".dashboard"))
    else:
        for errors in form.errors.values():
            for error in errors:
                flash(str(error), "danger")

    return _render_dashboard(_load_directory(store), create_form=form, status=400)


@bp.route("/join", methods=["POST"])
@login_required
def join_group():
    """Join a group by code, answering its custom fields."""
    store = _store()
    form = JoinForm()
    min_length = current_app.config["JOIN_CODE_MIN_LENGTH"]
    join_fields = MembershipService.load_join_schema(store, form.code.data, min_length)
    responses = _join_responses(join_fields)

    if form.validate_on_submit():
        try:
            group_id = MembershipService.join(
                store,
                form.code.data,
                g.user.uid,
                g.user.label,
                g.user.photo_url,
                responses,
            )
        except StoreUnavailable as e:
            current_app.logger.error(f"Failed to join group: {e.__cause__ or e}")
            flash("Could not join that group. Please double-check the code.", "danger")
        except AppError as e:
            current_app.logger.info(f"Join rejected for {g.user.uid}: {e.message}")
            flash(e.message, "danger")
        else:
            flash("Welcome aboard! You have joined the group.", "success")
            directory = _load_directory(store)
            directory.select_group(group_id)
            _save_directory(directory)
            return redirect(url_for(".dashboard"))
    else:
        for error in form.code.errors:
            flash(str(error), "danger")

    return _render_dashboard(
        _load_directory(store),
        join_form=form,
        join_fields=join_fields,
        join_responses=responses,
        status=400,
    )


@bp.route("/<string:group_id>/draw", methods=["POST"])
@login_required
def run_draw(group_id):
    """Run (or re-run) the draw for a group the current user organizes."""
    directory = _load_directory(_store())
    if directory.select_group(group_id) != group_id:
        flash("Group not found.", "danger")
        _save_directory(directory)
        return redirect(url_for(".dashboard"))

    group = directory.selected_group
    form = DrawForm()
    # Each rendered draw button carries a one-time token, so a double submit
    # of the same page only draws once.
    if group["ownerId"] == g.user.uid:
        status = (
            _consume_draw_token(group_id, form.token.data)
            if form.validate_on_submit()
            else "expired"
        )
        if status == "used":
            current_app.logger.info(f"Ignored repeated draw submit for {group_id}")
            flash("That draw was already submitted.", "info")
        elif status == "expired":
            current_app.logger.info(f"Ignored stale draw form for {group_id}")
            flash("That draw form has expired. Please try again.", "warning")
        if status != "ok":
            _save_directory(directory)
            return redirect(url_for(".dashboard"))

    try:
        DrawEngine.run_draw(directory.store, group, g.user.uid)
    except StoreUnavailable as e:
        current_app.logger.error(f"Failed to run draw: {e.__cause__ or e}")
        directory.set_notice(
            "draw", "danger", "Something went wrong running the draw. Please try again."
        )
    except AppError as e:
        current_app.logger.warning(f"Draw rejected for {group_id}: {e.message}")
        directory.set_notice("draw", "danger", e.message)
    else:
        directory.set_notice(
            "draw", "success", "Draw completed! Everyone now has someone to surprise."
        )
    _save_directory(directory)
    return redirect(url_for(".dashboard"))


@bp.route("/<string:group_id>/delete", methods=["POST"])
@login_required
def delete_group(group_id):
    """Delete a group the current user organizes."""
    directory = _load_directory(_store())
    if directory.select_group(group_id) != group_id:
        flash("Group not found.", "danger")
        _save_directory(directory)
        return redirect(url_for(".dashboard"))

    group = directory.selected_group
    form = DeleteGroupForm()
    if group["ownerId"] == g.user.uid and not form.validate_on_submit():
        for error in form.confirm.errors:
            directory.set_notice("delete", "warning", str(error))
        _save_directory(directory)
        return redirect(url_for(".dashboard"))

    try:
        GroupLifecycle.delete(directory.store, group, g.user.uid)
    except StoreUnavailable as e:
        current_app.logger.error(f"Failed to delete group: {e.__cause__ or e}")
        directory.set_notice(
            "delete", "danger", "Unable to delete the group. Please try again."
        )
    except AppError as e:
        current_app.logger.warning(f"Delete rejected for {group_id}: {e.message}")
        flash(e.message, "danger")
    else:
        flash("Group deleted.", "success")
        directory.refresh(g.user.uid)
        directory.select_group(None)
    _save_directory(directory)
    return redirect(url_for(".dashboard"))
