"""Field types for configforge models.

Usage:
    from configforge.fields import BooleanField, IntegerField, StringField

    class SSHSettings(Model):
        config_path = "system/ssh"

        enable = BooleanField()
        port = IntegerField(default=22, minimum=1, maximum=65535)
        banner = StringField(default="", allow_empty=True)
"""

from configforge.fields.base import Field
from configforge.fields.boolean import BooleanField
from configforge.fields.numeric import FloatField, IntegerField, UnixTimeField
from configforge.fields.string import Base64Field, StringField, UIDField
from configforge.fields.temporal import DateTimeField
from configforge.fields.foreign_model import ForeignModelField

__all__ = [
    "Base64Field",
    "BooleanField",
    "DateTimeField",
    "Field",
    "FloatField",
    "ForeignModelField",
    "IntegerField",
    "StringField",
    "UIDField",
    "UnixTimeField",
]
