from flask_wtf import FlaskForm
from wtforms import BooleanField, SelectField, StringField, TextAreaField
from wtforms.validators import InputRequired, Length, Optional

LANGUAGE_CHOICES = [("en", "English"), ("fr", "French")]


class BackendRequestForm(FlaskForm):
    """Fields shared by every request that reaches a generation backend."""

    language = SelectField("Language", choices=LANGUAGE_CHOICES, default="en")
    model = StringField("AI model", validators=[Optional(), Length(max=40)])


class GenerateLetterForm(BackendRequestForm):
    destination = StringField("Destination", validators=[InputRequired(), Length(max=200)])
    goal = TextAreaField("Goal", validators=[InputRequired(), Length(max=2000)])
    additional_info = TextAreaField("Additional information", validators=[Optional(), Length(max=5000)])


class LetterContentForm(FlaskForm):
    content = TextAreaField("Letter", validators=[Optional()])
    record_history = BooleanField("Save to history", default=False)


class ParagraphEditForm(FlaskForm):
    text = TextAreaField("Paragraph", validators=[InputRequired()])


class ManualPlaceholderForm(FlaskForm):
    placeholder = StringField("Placeholder", validators=[InputRequired(), Length(max=200)])
    value = TextAreaField("Value", validators=[InputRequired()])


class ToneRewriteForm(BackendRequestForm):
    tone = StringField("Tone", validators=[InputRequired(), Length(max=60)])


class ParagraphActionForm(BackendRequestForm):
    pass


class PlaceholderForm(BackendRequestForm):
    placeholder = StringField("Placeholder", validators=[InputRequired(), Length(max=200)])
