# ============================================================================
# CLIMATE REPORT MODEL
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Core model - Typed view of a completed monitoring report
# PURPOSE: Lenient, all-optional model over the parsed result payload
# LAST_REVIEWED: 14 OCT 2026
# EXPORTS: ClimateResult, TrendSummary, TrendBreakdown, TrendValue, ...
# DEPENDENCIES: pydantic
# ============================================================================
"""
Climate Report Model

The processing service returns an AI-generated report. Its fields are
all optional and sometimes change shape between runs; the model accepts
whatever is present and keeps unknown fields.

Trend fields arrive either as a plain string ("rising") or as a mapping
keyed by sub-metric ({"pm25": "rising", "co": "stable"}). They are
normalised into a tagged variant so consumers can match on `kind`:

    match report.trend_analysis.trend_direction:
        case TrendSummary(text=text): ...
        case TrendBreakdown(values=values): ...
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from core.contracts import RiskLevel


# ============================================================================
# TREND VARIANT
# ============================================================================

class TrendSummary(BaseModel):
    """Single free-text trend description."""
    kind: Literal["summary"] = "summary"
    text: str

    model_config = {"frozen": True}


class TrendBreakdown(BaseModel):
    """Trend description per sub-metric."""
    kind: Literal["breakdown"] = "breakdown"
    values: Dict[str, str] = Field(default_factory=dict)

    model_config = {"frozen": True}


TrendValue = Annotated[Union[TrendSummary, TrendBreakdown], Field(discriminator="kind")]


def _to_trend(value: Any) -> Any:
    """Normalise a raw trend value (str | dict) into the tagged shape."""
    if value is None or isinstance(value, (TrendSummary, TrendBreakdown)):
        return value
    if isinstance(value, dict):
        if value.get("kind") in ("summary", "breakdown"):
            return value
        return {"kind": "breakdown", "values": {str(k): str(v) for k, v in value.items()}}
    return {"kind": "summary", "text": str(value)}


class TrendAnalysis(BaseModel):
    trend_direction: Optional[TrendValue] = None
    trend_magnitude: Optional[TrendValue] = None
    historical_average: Optional[TrendValue] = None
    current_vs_average: Optional[TrendValue] = None
    prediction_24h: Optional[TrendValue] = None
    confidence: Optional[Union[float, str]] = None
    analysis: Optional[str] = None

    model_config = {"extra": "allow"}

    @field_validator(
        "trend_direction",
        "trend_magnitude",
        "historical_average",
        "current_vs_average",
        "prediction_24h",
        mode="before",
    )
    @classmethod
    def normalise_trend(cls, value: Any) -> Any:
        return _to_trend(value)


# ============================================================================
# REPORT SECTIONS
# ============================================================================

class HealthAssessment(BaseModel):
    aqi_overall: Optional[float] = None
    risk_level: Optional[str] = None
    risk_category: Optional[str] = None
    health_recommendations: List[str] = Field(default_factory=list)
    sensitive_groups_advice: List[str] = Field(default_factory=list)
    outdoor_activity_guidance: Union[List[str], Dict[str, str]] = Field(default_factory=list)
    protective_measures: List[str] = Field(default_factory=list)

    model_config = {"extra": "allow"}

    @property
    def band(self) -> Optional[RiskLevel]:
        """AQI band derived from aqi_overall (None if missing or negative)."""
        if self.aqi_overall is None or self.aqi_overall < 0:
            return None
        return RiskLevel.from_aqi(self.aqi_overall)


class VerificationData(BaseModel):
    veracity_score: Optional[float] = None
    confidence: Optional[Union[float, str]] = None
    status: Optional[str] = None
    contextual_analysis: Optional[str] = None
    data_quality: Optional[str] = None
    anomaly_detected: Optional[bool] = None
    anomalies: List[Any] = Field(default_factory=list)
    sources: List[Any] = Field(default_factory=list)

    model_config = {"extra": "allow"}


class Measurements(BaseModel):
    """
    Sparse metric -> value mapping.

    Known metrics are typed; anything else the report carries is kept as extra.
    """
    pm25: Optional[float] = None
    pm10: Optional[float] = None
    co: Optional[float] = None
    no2: Optional[float] = None
    o3: Optional[float] = None
    so2: Optional[float] = None
    temperature: Optional[float] = None
    humidity: Optional[float] = None

    model_config = {"extra": "allow"}

    def as_dict(self) -> Dict[str, Any]:
        """Only the metrics actually present."""
        return self.model_dump(exclude_none=True)


class Location(BaseModel):
    lat: Optional[float] = None
    lon: Optional[float] = None
    name: Optional[str] = None
    country: Optional[str] = None

    model_config = {"extra": "allow"}


# ============================================================================
# CLIMATE RESULT
# ============================================================================

class ClimateResult(BaseModel):
    """
    Typed view of a completed report. Built from parser output, never persisted.
    """
    agent_id: Optional[str] = None
    measurement_type: Optional[str] = None
    timestamp: Optional[Union[str, int, float]] = None
    location: Optional[Location] = None
    measurements: Optional[Measurements] = None
    health_assessment: Optional[HealthAssessment] = None
    verification: Optional[VerificationData] = None
    trend_analysis: Optional[TrendAnalysis] = None
    data_hash: Optional[str] = None
    protocol_version: Optional[str] = None
    network: Optional[str] = None
    signature: Optional[str] = None

    model_config = {"extra": "allow"}

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ClimateResult":
        """Build the view from the dict returned by parse_climate_result."""
        return cls.model_validate(payload)

    @property
    def risk_band(self) -> Optional[RiskLevel]:
        if self.health_assessment is None:
            return None
        return self.health_assessment.band


__all__ = [
    "TrendSummary",
    "TrendBreakdown",
    "TrendValue",
    "TrendAnalysis",
    "HealthAssessment",
    "VerificationData",
    "Measurements",
    "Location",
    "ClimateResult",
]
