"""Pydantic schemas for request bodies accepted by the API client."""

from __future__ import annotations

from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

Stop = Union[str, List[str]]


class _Params(BaseModel):
    model_config = ConfigDict(extra="forbid")

    def to_body(self) -> dict:
        """Request body without the fields left unset."""
        return self.model_dump(exclude_none=True)


class CompletionParams(_Params):
    engine: Optional[str] = Field(None, description="Engine overriding the client default.")
    max_tokens: Optional[int] = Field(None, ge=0, description="Tokens to generate.")
    temperature: Optional[float] = Field(None, ge=0, le=2, description="Sampling temperature.")
    top_p: Optional[float] = Field(None, ge=0, le=1, description="Nucleus sampling mass.")
    n: Optional[int] = Field(None, ge=1, description="Completions per prompt.")
    logprobs: Optional[int] = Field(None, ge=0, description="Most likely tokens to report.")
    echo: Optional[bool] = Field(None, description="Echo back the prompt.")
    stop: Optional[Stop] = Field(None, description="Up to 4 stop sequences.")
    presence_penalty: Optional[float] = Field(None, ge=-2, le=2)
    frequency_penalty: Optional[float] = Field(None, ge=-2, le=2)
    best_of: Optional[int] = Field(None, ge=1, description="Server-side candidates.")
    logit_bias: Optional[Dict[str, float]] = Field(None, description="Token id -> bias.")

    @field_validator("stop")
    @classmethod
    def validate_stop(cls, value: Optional[Stop]) -> Optional[Stop]:
        if isinstance(value, list) and not 1 <= len(value) <= 4:
            raise ValueError("stop accepts 1 to 4 sequences.")
        return value


class SearchParams(_Params):
    engine: Optional[str] = None
    documents: Optional[List[str]] = Field(None, max_length=200)
    file: Optional[str] = Field(None, description="Id of an uploaded search file.")
    max_rerank: Optional[int] = Field(None, ge=1)
    return_metadata: Optional[bool] = None


class ClassificationParams(_Params):
    model: Optional[str] = Field(None, description="Model overriding the client engine.")
    examples: Optional[List[List[str]]] = Field(None, description="[text, label] pairs.")
    file: Optional[str] = None
    labels: Optional[List[str]] = None
    search_model: Optional[str] = None
    temperature: Optional[float] = Field(None, ge=0, le=2)
    logprobs: Optional[int] = Field(None, ge=0)
    max_examples: Optional[int] = Field(None, ge=1)
    logit_bias: Optional[Dict[str, float]] = None
    return_prompt: Optional[bool] = None
    return_metadata: Optional[bool] = None
    expand: Optional[List[str]] = None

    @field_validator("examples")
    @classmethod
    def validate_examples(cls, value: Optional[List[List[str]]]) -> Optional[List[List[str]]]:
        if value is not None and any(len(pair) != 2 for pair in value):
            raise ValueError("each example must be a [text, label] pair.")
        return value


class AnswerParams(_Params):
    model: Optional[str] = None
    examples: List[List[str]] = Field(..., description="[question, answer] pairs.")
    examples_context: str = Field(..., description="Context the examples were answered from.")
    documents: Optional[List[str]] = Field(None, max_length=200)
    file: Optional[str] = None
    search_model: Optional[str] = None
    return_prompt: Optional[bool] = None
    expand: Optional[List[str]] = None
    max_rerank: Optional[int] = Field(None, ge=1)
    return_metadata: Optional[bool] = None
    max_tokens: Optional[int] = Field(None, ge=0)
    temperature: Optional[float] = Field(None, ge=0, le=2)
    n: Optional[int] = Field(None, ge=1)
    logprobs: Optional[int] = Field(None, ge=0)
    stop: Optional[Stop] = None
    logit_bias: Optional[Dict[str, float]] = None

    @field_validator("stop")
    @classmethod
    def validate_stop(cls, value: Optional[Stop]) -> Optional[Stop]:
        if isinstance(value, list) and not 1 <= len(value) <= 4:
            raise ValueError("stop accepts 1 to 4 sequences.")
        return value

    @field_validator("examples")
    @classmethod
    def validate_examples(cls, value: List[List[str]]) -> List[List[str]]:
        if any(len(pair) != 2 for pair in value):
            raise ValueError("each example must be a [question, answer] pair.")
        return value
