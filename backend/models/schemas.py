"""
Pydantic models for API request/response validation.
"""

from typing import Optional, List
from pydantic import BaseModel, Field, model_validator


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------


class MessageResponse(BaseModel):
    """Plain acknowledgement for state changes that return no entity."""

    status: str = "ok"
    message: str


class UserSummary(BaseModel):
    """Compact user embedded in room and team responses."""

    id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_picture_url: Optional[str] = None


class ParticipantInfo(UserSummary):
    """Room participant or team member with the time they joined."""

    joined_at: Optional[str] = None


# ---------------------------------------------------------------------------
# Branches
# ---------------------------------------------------------------------------


class BranchResponse(BaseModel):
    """Branch (venue) data."""

    id: int
    name: str
    address: str
    google_maps_url: Optional[str] = None
    operating_hours_start: str
    operating_hours_end: str
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_active: bool
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class BranchListResponse(BaseModel):
    """One page of branches."""

    items: List[BranchResponse]
    total_count: int
    page: int
    page_size: int


class CreateBranchRequest(BaseModel):
    """Request to create a branch. Hours are HH:MM."""

    name: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    google_maps_url: Optional[str] = None
    operating_hours_start: str = Field(..., min_length=1)
    operating_hours_end: str = Field(..., min_length=1)
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @model_validator(mode="after")
    def validate_not_blank(self):
        if not self.name.strip():
            raise ValueError("Branch name is required")
        if not self.address.strip():
            raise ValueError("Address is required")
        return self


class UpdateBranchRequest(BaseModel):
    """Partial branch update. Omitted fields are left unchanged."""

    name: Optional[str] = None
    address: Optional[str] = None
    google_maps_url: Optional[str] = None
    operating_hours_start: Optional[str] = None
    operating_hours_end: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_active: Optional[bool] = None


# ---------------------------------------------------------------------------
# Individual rooms
# ---------------------------------------------------------------------------


class CreateIndividualRoomRequest(BaseModel):
    """Request to book an individual room. Date is YYYY-MM-DD, times HH:MM."""

    branch_id: int
    scheduled_date: str = Field(..., min_length=1)
    start_time: str = Field(..., min_length=1)
    end_time: str = Field(..., min_length=1)
    total_slots: int = Field(..., ge=2)
    notes: Optional[str] = Field(None, max_length=1000)


class IndividualRoomResponse(BaseModel):
    """Individual room summary."""

    id: int
    branch: Optional[BranchResponse] = None
    owner: Optional[UserSummary] = None
    scheduled_date: str
    start_time: str
    end_time: str
    total_slots: int
    filled_slots: int
    available_slots: int
    notes: Optional[str] = None
    status: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class IndividualRoomDetailResponse(IndividualRoomResponse):
    """Individual room with its participants in join order."""

    participants: List[ParticipantInfo] = []


class IndividualRoomListResponse(BaseModel):
    """One page of individual rooms."""

    items: List[IndividualRoomResponse]
    total_count: int
    page: int
    page_size: int


# ---------------------------------------------------------------------------
# Teams
# ---------------------------------------------------------------------------


class CreateTeamRequest(BaseModel):
    """Request to create a team. The caller becomes captain."""

    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    logo_url: Optional[str] = None
    roster_size: int = Field(..., ge=2)

    @model_validator(mode="after")
    def validate_name(self):
        if not self.name.strip():
            raise ValueError("Team name is required")
        return self


class UpdateTeamRequest(BaseModel):
    """Partial team profile update."""

    name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    logo_url: Optional[str] = None


class AddMemberRequest(BaseModel):
    user_id: int


class TransferCaptainRequest(BaseModel):
    new_captain_id: int


class TeamResponse(BaseModel):
    """Team summary."""

    id: int
    name: str
    description: Optional[str] = None
    logo_url: Optional[str] = None
    captain: Optional[UserSummary] = None
    roster_size: int
    member_count: int
    available_spots: int
    status: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class TeamDetailResponse(TeamResponse):
    """Team with its member list."""

    members: List[ParticipantInfo] = []


class TeamListResponse(BaseModel):
    """One page of teams."""

    items: List[TeamResponse]
    total_count: int
    page: int
    page_size: int


# ---------------------------------------------------------------------------
# Team rooms
# ---------------------------------------------------------------------------


class CreateTeamRoomRequest(BaseModel):
    """Request to open a team room for one of the caller's teams."""

    branch_id: int
    team_id: int
    scheduled_date: str = Field(..., min_length=1)
    start_time: str = Field(..., min_length=1)
    end_time: str = Field(..., min_length=1)


class JoinTeamRoomRequest(BaseModel):
    """Request to join a team room as the opponent team."""

    team_id: int


class TeamRoomTeamSummary(BaseModel):
    id: int
    name: str
    logo_url: Optional[str] = None
    roster_size: int
    member_count: int


class TeamRoomResponse(BaseModel):
    """Team room summary. ``opponent_team`` is null while the room is OPEN."""

    id: int
    branch: Optional[BranchResponse] = None
    creator_team: Optional[TeamRoomTeamSummary] = None
    opponent_team: Optional[TeamRoomTeamSummary] = None
    scheduled_date: str
    start_time: str
    end_time: str
    required_team_size: int
    status: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class TeamRoomDetailResponse(BaseModel):
    """Team room with both teams' rosters."""

    id: int
    branch: Optional[BranchResponse] = None
    creator_team: Optional[TeamDetailResponse] = None
    opponent_team: Optional[TeamDetailResponse] = None
    scheduled_date: str
    start_time: str
    end_time: str
    required_team_size: int
    status: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class TeamRoomListResponse(BaseModel):
    """One page of team rooms."""

    items: List[TeamRoomResponse]
    total_count: int
    page: int
    page_size: int


# ---------------------------------------------------------------------------
# Bookings and search
# ---------------------------------------------------------------------------


class BookingDetails(BaseModel):
    """Type-specific booking fields; the other type's fields are null."""

    total_slots: Optional[int] = None
    filled_slots: Optional[int] = None
    owner_name: Optional[str] = None
    creator_team_name: Optional[str] = None
    opponent_team_name: Optional[str] = None
    required_team_size: Optional[int] = None


class BookingResponse(BaseModel):
    """A single booking, individual or team."""

    id: int
    booking_type: str  # INDIVIDUAL | TEAM
    branch: Optional[BranchResponse] = None
    scheduled_date: str
    start_time: str
    end_time: str
    details: BookingDetails
    status: str
    created_at: Optional[str] = None


class SearchResponse(BaseModel):
    """Search results grouped by category."""

    branches: List[BranchResponse] = []
    individual_rooms: List[IndividualRoomResponse] = []
    team_rooms: List[TeamRoomResponse] = []
    teams: List[TeamResponse] = []
    total_results: int = 0
