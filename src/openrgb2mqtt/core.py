from .mixins.helpers import HelpersMixin
from .mixins.mqtt import MqttMixin
from .mixins.publish import PublishMixin
from .mixins.openrgb_api import OpenRGBAPIMixin
from .mixins.connection import ConnectionMixin
from .mixins.refresh import RefreshMixin
from .mixins.actions import ActionsMixin
from .mixins.feedbacks import FeedbacksMixin
from .mixins.loops import LoopsMixin
from .base import Base


class OpenRgb2Mqtt(
    HelpersMixin,
    PublishMixin,
    OpenRGBAPIMixin,
    ConnectionMixin,
    RefreshMixin,
    ActionsMixin,
    FeedbacksMixin,
    LoopsMixin,
    MqttMixin,
    Base,
):
    pass
