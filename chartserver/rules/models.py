from pydantic import BaseModel, Field


class LimitsRules(BaseModel):
    max_width: int = Field(default=3000, gt=0)
    max_height: int = Field(default=3000, gt=0)
    default_width: int = Field(default=500, gt=0)
    default_height: int = Field(default=300, gt=0)


class RendererRules(BaseModel):
    cache_size: int = Field(default=64, ge=1)
    default_version: str = "2.9.4"
    default_device_pixel_ratio: float = Field(default=2.0, gt=0)


class TemplateRules(BaseModel):
    expiry_days: int = Field(default=180, ge=1)
    sweep_interval_hours: float = Field(default=24.0, gt=0)


class RateLimitRules(BaseModel):
    per_minute: int | None = Field(default=None, ge=1)
    window_seconds: int = Field(default=60, ge=1)


class HttpRules(BaseModel):
    cache_max_age: int = Field(default=604800, ge=0)
    json_limit_bytes: int = Field(default=100 * 1024, gt=0)
    rate_limit: RateLimitRules = RateLimitRules()


class Rules(BaseModel):
    limits: LimitsRules = LimitsRules()
    renderer: RendererRules = RendererRules()
    templates: TemplateRules = TemplateRules()
    http: HttpRules = HttpRules()
