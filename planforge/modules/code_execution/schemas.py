from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class CodeExecuteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    code: Optional[str] = None
    language: Optional[str] = None
    max_execution_time: Optional[int] = Field(None, alias="maxExecutionTime", ge=1)
    max_memory_usage: Optional[int] = Field(None, alias="maxMemoryUsage", ge=1)
