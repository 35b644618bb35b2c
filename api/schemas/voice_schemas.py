"""Voice API schemas - Request/Response DTOs for Swagger documentation."""

from __future__ import annotations

from typing import List, Optional
from pydantic import BaseModel, Field


# ============================================================================
# Response Models - Enrollment
# ============================================================================

class EnrollmentResponse(BaseModel):
    """Response from voice enrollment endpoint."""
    type: str = Field(default="enroll", description="Response type identifier")
    success: bool = Field(..., description="Whether the sample was added to the profile")
    accepted: bool = Field(..., description="Same as success; false for a no-op on a complete profile")
    state: str = Field(..., description="Lock state after the call: locked, enrolling, ready, unlocked")
    enrollment_count: int = Field(..., description="Samples enrolled so far")
    required_samples: int = Field(default=3, description="Samples needed to complete enrollment")
    remaining_samples: Optional[int] = Field(None, description="Samples still needed")
    is_complete: Optional[bool] = Field(None, description="Whether enrollment has reached the target count")
    error_code: Optional[str] = Field(None, description="INVALID_INPUT, ENROLLMENT_COMPLETE or PROCESSING_FAILED")
    message: str = Field(..., description="Human-readable result message")

    class Config:
        json_schema_extra = {
            "example": {
                "type": "enroll",
                "success": True,
                "accepted": True,
                "state": "enrolling",
                "enrollment_count": 2,
                "required_samples": 3,
                "remaining_samples": 1,
                "is_complete": False,
                "message": "Sample 2 recorded. 1 more needed."
            }
        }


# ============================================================================
# Response Models - Verification
# ============================================================================

class VerificationResponse(BaseModel):
    """Response from voice verification endpoint."""
    type: str = Field(default="verify", description="Response type identifier")
    success: bool = Field(..., description="Whether the voice matched")
    verified: bool = Field(..., description="Whether the voice matched")
    match: bool = Field(..., description="Whether the voice matched")
    state: str = Field(..., description="Lock state after the call")
    unlocked: bool = Field(..., description="Whether the lock is open")
    score: Optional[float] = Field(None, ge=-1.0, le=1.0, description="Best cosine similarity over enrolled samples")
    scores: Optional[List[float]] = Field(None, description="Cosine similarity against each enrolled sample")
    mean_score: Optional[float] = Field(None, description="Mean of the per-sample scores")
    threshold: Optional[float] = Field(None, description="Decision threshold (score must exceed it)")
    confidence: Optional[str] = Field(None, description="High, Medium or Low")
    error_code: Optional[str] = Field(None, description="PROFILE_EMPTY, ENROLLMENT_INCOMPLETE, INVALID_INPUT")
    message: str = Field(..., description="Human-readable result message")

    class Config:
        json_schema_extra = {
            "example": {
                "type": "verify",
                "success": True,
                "verified": True,
                "match": True,
                "state": "unlocked",
                "unlocked": True,
                "score": 0.81,
                "scores": [0.40, 0.81, 0.60],
                "mean_score": 0.6033,
                "threshold": 0.75,
                "confidence": "Medium",
                "message": "Voice match - unlocked"
            }
        }


# ============================================================================
# Response Models - Status / Reset
# ============================================================================

class VoiceStatusResponse(BaseModel):
    """Current voice lock status."""
    type: str = Field(default="status", description="Response type identifier")
    success: bool = Field(default=True)
    session_id: str = Field(..., description="Session identifier")
    state: str = Field(..., description="locked, enrolling, ready or unlocked")
    locked: bool = Field(..., description="Whether arm control is locked")
    enrollment_count: int = Field(..., description="Samples enrolled so far")
    required_samples: int = Field(..., description="Samples needed to complete enrollment")
    remaining_samples: int = Field(..., description="Samples still needed")
    threshold: float = Field(..., description="Decision threshold")
    model_tag: str = Field(..., description="Embedding model in use, 'identity' in degraded mode")
    degraded: bool = Field(..., description="True when running without an embedding model")

    class Config:
        json_schema_extra = {
            "example": {
                "type": "status",
                "success": True,
                "session_id": "default",
                "state": "ready",
                "locked": True,
                "enrollment_count": 3,
                "required_samples": 3,
                "remaining_samples": 0,
                "threshold": 0.75,
                "model_tag": "conv1d-mfcc-s0",
                "degraded": False
            }
        }


class ResetResponse(BaseModel):
    """Response from the reset endpoint."""
    type: str = Field(default="reset")
    success: bool = Field(...)
    state: str = Field(..., description="Always 'locked'")
    enrollment_count: int = Field(default=0)
    required_samples: int = Field(default=3)
    message: str = Field(...)


# ============================================================================
# Error Response Model
# ============================================================================

class ErrorResponse(BaseModel):
    """Error response from any endpoint."""
    error: str = Field(..., description="Error message describing what went wrong")
    error_code: Optional[str] = Field(None, description="Machine-readable error code")

    class Config:
        json_schema_extra = {
            "example": {
                "error": "Empty audio",
                "error_code": "INVALID_INPUT"
            }
        }
