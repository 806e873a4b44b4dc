from pydantic import BaseModel


class User(BaseModel):
    id: int
    chat_id: int
    username: str = ""
    locale: str = "en"
