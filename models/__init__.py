"""Database models for HealthOS."""

from models.database.base import Base
from models.database.oauth_token import OAuthToken
from models.database.sync_metadata import SyncMetadata, DATA_TYPES
from models.database.profile import Profile, BodyMeasurement
from models.database.cycle import Cycle, Recovery
from models.database.sleep import Sleep, Workout

# Domain model backing each synchronized data type
MODEL_BY_DATA_TYPE = {
    "profile": Profile,
    "body_measurements": BodyMeasurement,
    "cycles": Cycle,
    "recovery": Recovery,
    "sleep": Sleep,
    "workouts": Workout,
}

__all__ = [
    "Base",
    "OAuthToken",
    "SyncMetadata",
    "DATA_TYPES",
    "Profile",
    "BodyMeasurement",
    "Cycle",
    "Recovery",
    "Sleep",
    "Workout",
    "MODEL_BY_DATA_TYPE",
]
