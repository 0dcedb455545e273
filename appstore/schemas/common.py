from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    version: str
    apps_count: int
    published_apps_count: int
    reviews_count: int
    downloads_count: int
