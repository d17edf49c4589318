from pydantic import BaseModel


class AreaOut(BaseModel):
    id: int
    name: str
