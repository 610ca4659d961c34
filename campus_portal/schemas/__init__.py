from campus_portal.schemas.auth import RegisterRequest, LoginRequest, UserSummary, TokenResponse
