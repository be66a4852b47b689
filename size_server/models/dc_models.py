from pydantic import BaseModel


class SizeModel(BaseModel):
    """Body returned by every size-bearing endpoint.

    For plain messages ``size`` carries the HTTP status code and
    ``is_message`` is set.
    """

    size: int
    is_message: bool = False
    message: str = ""
