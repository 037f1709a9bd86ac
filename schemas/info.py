from pydantic import BaseModel


class InfoResponse(BaseModel):
    networkUrl: str
