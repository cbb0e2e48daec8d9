"""Forms for the group blueprint."""

from flask_wtf import FlaskForm
from wtforms import (
    BooleanField,
    FieldList,
    Form,
    FormField,
    HiddenField,
    StringField,
    TextAreaField,
)
from wtforms.validators import DataRequired, Length, Optional

MAX_CUSTOM_FIELDS = 20


class CustomFieldForm(Form):
    """One question members answer when joining."""

    label = StringField(
        "Field label",
        validators=[Optional(), Length(max=80)],
        render_kw={"placeholder": "Field label (e.g., Jersey size, Avoidable clubs)"},
    )
    placeholder = StringField(
        "Placeholder text",
        validators=[Optional(), Length(max=120)],
        render_kw={"placeholder": "Placeholder text (optional)"},
    )


class GroupForm(FlaskForm):
    """Form for creating a new group."""

    name = StringField(
        "Group name",
        validators=[DataRequired(message="Give your group a name first."), Length(max=100)],
        render_kw={"placeholder": "E.g. Product Team Elves"},
    )
    description = TextAreaField(
        "Description (optional)",
        validators=[Optional(), Length(max=500)],
        render_kw={
            "placeholder": "Let everyone know the theme, budget, or gift ideas.",
            "rows": 3,
        },
    )
    custom_fields = FieldList(
        FormField(CustomFieldForm), min_entries=1, max_entries=MAX_CUSTOM_FIELDS
    )


class JoinForm(FlaskForm):
    """Form for joining a group by code.

    Answers to the group's custom fields arrive as ``response-<field id>``
    inputs rendered from the join schema.
    """

    code = StringField(
        "Join code",
        validators=[DataRequired(message="Enter a join code.")],
        render_kw={"placeholder": "Paste the code here"},
    )


class DrawForm(FlaskForm):
    """Organizer form that runs the draw once per rendered page."""

    token = HiddenField()


class DeleteGroupForm(FlaskForm):
    """Organizer form for deleting a group."""

    confirm = BooleanField(
        "I understand this removes the group for all members.",
        validators=[DataRequired(message="Please confirm before deleting the group.")],
    )
