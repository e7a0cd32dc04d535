from flask_wtf import FlaskForm
from wtforms import StringField, TextAreaField
from wtforms.validators import Email, Length, Optional


class PersonalInfoForm(FlaskForm):
    full_name = StringField("Full name", validators=[Optional(), Length(max=120)])
    email = StringField("Email", validators=[Optional(), Email(), Length(max=255)])
    phone = StringField("Phone", validators=[Optional(), Length(max=40)])
    address = TextAreaField("Address", validators=[Optional(), Length(max=500)])
    education = TextAreaField("Education", validators=[Optional(), Length(max=2000)])
    experience = TextAreaField("Experience", validators=[Optional(), Length(max=2000)])
    skills = TextAreaField("Skills", validators=[Optional(), Length(max=2000)])
