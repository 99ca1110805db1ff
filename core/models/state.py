# core/models/state.py

from datetime import date, datetime, UTC
from enum import Enum
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _assume_utc(value: datetime) -> datetime:
    # Older payloads stored plain dates ("2024-01-31") which parse as naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _number_to_str(value):
    # ISBNs typed into spreadsheets come back as numbers
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(int(value)) if float(value).is_integer() else str(value)
    return value


UtcDateTime = Annotated[datetime, AfterValidator(_assume_utc)]
OptionalUtcDateTime = Annotated[Optional[UtcDateTime], BeforeValidator(_blank_to_none)]
OptionalDate = Annotated[Optional[date], BeforeValidator(_blank_to_none)]
Isbn = Annotated[Optional[str], BeforeValidator(_number_to_str)]


class ReadStatus(str, Enum):
    UNREAD = "Unread"
    READING = "Reading"
    COMPLETED = "Completed"


class BookCondition(str, Enum):
    NEW = "New"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"
    DAMAGED = "Damaged"


class Role(str, Enum):
    ADMIN = "Admin"
    USER = "User"


class LocationType(str, Enum):
    ROOM = "Room"
    SHELF = "Shelf"
    SPOT = "Spot"


class AiProvider(str, Enum):
    GEMINI = "gemini"
    OLLAMA = "ollama"


class DbType(str, Enum):
    SQLITE = "sqlite"
    POSTGRES = "postgres"


class BackupFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    MANUAL = "manual"


class Theme(str, Enum):
    DARK = "dark"
    LIGHT = "light"


class StateModel(BaseModel):
    """Base for everything stored in the snapshot.

    Attributes are snake_case in Python and camelCase on the wire. Unknown keys
    are kept so a load/save cycle never drops data written by newer versions.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra='allow',
        frozen=True,
    )


# ----------------------------------------------------------------------------
# Settings
# ----------------------------------------------------------------------------

class AiSettings(StateModel):
    provider: AiProvider = AiProvider.GEMINI
    ollama_url: str = "http://localhost:11434"
    ollama_model: str = "llama3.2"
    google_api_key: str = ""
    gemini_api_key: str = ""


class DbSettings(StateModel):
    type: DbType = DbType.SQLITE
    host: str = "localhost"
    name: str = "homelibrary"


class BackupSettings(StateModel):
    frequency: BackupFrequency = BackupFrequency.WEEKLY
    enabled_local: bool = True
    enabled_nas: bool = False
    enabled_drive: bool = False
    nas_path: str = ""
    last_backup_date: Optional[str] = None
    google_drive_connected: bool = False


class ApiSettings(StateModel):
    google_key: str = ""
    whisper_url: str = "https://api.openai.com/v1"
    whisper_key: str = ""


class QolSettings(StateModel):
    show_value: bool = True
    vibrant_ui: bool = True
    auto_analyze: bool = False


# ----------------------------------------------------------------------------
# Entities
# ----------------------------------------------------------------------------

class ReadEntry(StateModel):
    book_id: str
    status: ReadStatus = ReadStatus.UNREAD
    date_finished: OptionalUtcDateTime = None
    read_count: Optional[int] = None
    read_dates: List[UtcDateTime] = Field(default_factory=list)


class Book(StateModel):
    id: str
    title: str
    author: str
    isbn: Isbn = None
    genres: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    status: ReadStatus = ReadStatus.UNREAD
    condition: BookCondition = BookCondition.GOOD
    location_id: Optional[str] = None
    added_by_user_id: Optional[str] = None
    added_by_user_name: Optional[str] = None
    added_date: OptionalUtcDateTime = None
    purchase_price: Optional[float] = None
    estimated_value: Optional[float] = None
    min_age: Optional[int] = None
    total_pages: Optional[int] = None

    # Enrichment
    summary: Optional[str] = None
    cover_url: Optional[str] = None
    media_adaptations: List[str] = Field(default_factory=list)
    is_first_edition: bool = False
    is_signed: bool = False
    parental_advice: Optional[str] = None
    understanding_guide: Optional[str] = None
    cultural_reference: Optional[str] = None
    amazon_link: Optional[str] = None


class BookDraft(StateModel):
    """Partial book data from a scan, lookup, AI analysis or import file"""
    title: Optional[str] = None
    author: Optional[str] = None
    isbn: Isbn = None
    genres: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    summary: Optional[str] = None
    cover_url: Optional[str] = None
    estimated_value: Optional[float] = None
    purchase_price: Optional[float] = None
    min_age: Optional[int] = None
    total_pages: Optional[int] = None
    media_adaptations: List[str] = Field(default_factory=list)
    parental_advice: Optional[str] = None
    understanding_guide: Optional[str] = None
    cultural_reference: Optional[str] = None
    amazon_link: Optional[str] = None


class User(StateModel):
    id: str
    name: str
    dob: OptionalDate = None
    gender: str = "Male"
    role: Role = Role.USER
    education_level: Optional[str] = None
    parent_role: Optional[str] = None
    profession: Optional[str] = None
    avatar_seed: Optional[str] = None
    favorites: List[str] = Field(default_factory=list)
    history: List[ReadEntry] = Field(default_factory=list)

    # Derived from dob on every load
    age: Optional[int] = None
    grade: Optional[str] = None


class Location(StateModel):
    id: str
    name: str
    type: LocationType = LocationType.ROOM
    parent_id: Optional[str] = None
    image_url: Optional[str] = None


class Loan(StateModel):
    id: str
    book_id: str
    user_id: Optional[str] = None
    borrower_name: Optional[str] = None
    loan_date: UtcDateTime
    return_date: OptionalUtcDateTime = None


class AppState(StateModel):
    is_setup_complete: bool = False
    is_demo_mode: bool = True
    books: List[Book] = Field(default_factory=list)
    users: List[User] = Field(default_factory=list)
    locations: List[Location] = Field(default_factory=list)
    loans: List[Loan] = Field(default_factory=list)
    current_user: Optional[str] = None
    theme: Theme = Theme.DARK
    ai_settings: AiSettings = Field(default_factory=AiSettings)
    db_settings: DbSettings = Field(default_factory=DbSettings)
    backup_settings: BackupSettings = Field(default_factory=BackupSettings)
    api_settings: ApiSettings = Field(default_factory=ApiSettings)
    qol_settings: QolSettings = Field(default_factory=QolSettings)

    def to_json_dict(self) -> dict:
        """Snapshot representation with camelCase keys"""
        return self.model_dump(mode='json', by_alias=True)
