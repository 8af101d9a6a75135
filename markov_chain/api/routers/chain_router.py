from dataclasses import asdict

from fastapi import APIRouter, HTTPException, Request, Response
from pydantic import BaseModel, Field
import logging

from markov_chain.config import settings
from markov_chain.services.persistence import (
    ChainDecodeError,
    UnknownFormatError,
    decode,
    encode,
    get_format,
)
from markov_chain.services.text_chain import TextChain, TokenTypeError, as_text_chain

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chain", tags=["chain"])

# In-memory chain cache, keyed by model name
MODEL_CACHE: dict[str, TextChain] = {}

# Formats accepted by the import endpoint
TEXT_FORMATS = ("json", "yaml")


class TrainRequest(BaseModel):
    corpus: list[str]
    order: int = Field(default=settings.CHAIN_ORDER, ge=1)
    model_name: str = "default"


class GenerateRequest(BaseModel):
    model_name: str = "default"
    paragraphs: int = Field(default=settings.DEFAULT_PARAGRAPHS, ge=0)
    sentences: int = Field(default=settings.DEFAULT_SENTENCES, ge=0)


class MergeRequest(BaseModel):
    sources: list[str]
    target: str


def get_chain(model_name: str) -> TextChain:
    chain = MODEL_CACHE.get(model_name)
    if chain is None:
        raise HTTPException(status_code=404, detail=f"model `{model_name}` not found, train first")
    return chain


@router.post("/train")
async def train(req: TrainRequest):
    if not req.corpus:
        raise HTTPException(status_code=400, detail="corpus is empty")

    chain = MODEL_CACHE.get(req.model_name)
    if chain is None:
        chain = TextChain(req.order)
    elif chain.order != req.order:
        raise HTTPException(
            status_code=409,
            detail=f"model `{req.model_name}` has order {chain.order}, but {req.order} was requested",
        )

    for text in req.corpus:
        chain.train_string(text)
    MODEL_CACHE[req.model_name] = chain

    logger.info(f"[Chain] Trained `{req.model_name}` on {len(req.corpus)} texts")
    return {"ok": True, "data": {"model": req.model_name, "order": chain.order, "nodes": len(chain)}}


@router.post("/generate")
async def generate(req: GenerateRequest):
    chain = get_chain(req.model_name)
    paragraphs = chain.generate_text(req.paragraphs, req.sentences)
    return {"ok": True, "data": {"paragraphs": paragraphs, "text": "\n".join(paragraphs)}}


@router.post("/merge")
async def merge(req: MergeRequest):
    if not req.sources:
        raise HTTPException(status_code=400, detail="no sources given")

    sources = [(name, get_chain(name)) for name in req.sources]
    target = MODEL_CACHE.get(req.target)
    order = target.order if target is not None else sources[0][1].order

    for name, chain in sources:
        if chain.order != order:
            raise HTTPException(
                status_code=409,
                detail=f"model `{name}` has order {chain.order}, but `{req.target}` needs order {order}",
            )

    if target is None:
        target = TextChain(order)
    for _, chain in sources:
        target.merge(chain)
    MODEL_CACHE[req.target] = target

    logger.info(f"[Chain] Merged {len(sources)} models into `{req.target}`")
    return {"ok": True, "data": {"model": req.target, "order": target.order, "nodes": len(target)}}


@router.get("/{model_name}/stats")
async def stats(model_name: str):
    chain = get_chain(model_name)
    return {"ok": True, "data": asdict(chain.get_stats())}


@router.get("/{model_name}/export")
async def export_chain(model_name: str, fmt: str = settings.DEFAULT_FORMAT):
    chain = get_chain(model_name)
    try:
        chain_format = get_format(fmt)
    except UnknownFormatError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return Response(content=encode(chain, chain_format), media_type=chain_format.media_type)


@router.post("/{model_name}/import")
async def import_chain(model_name: str, request: Request, fmt: str = settings.DEFAULT_FORMAT):
    try:
        chain_format = get_format(fmt)
    except UnknownFormatError as e:
        raise HTTPException(status_code=400, detail=str(e))
    # Unpickling a request body would run arbitrary code
    if chain_format.name not in TEXT_FORMATS:
        raise HTTPException(status_code=400, detail=f"import is not allowed for {chain_format.name} data")

    try:
        chain = as_text_chain(decode(await request.body(), chain_format))
    except (ChainDecodeError, TokenTypeError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    MODEL_CACHE[model_name] = chain
    logger.info(f"[Chain] Imported `{model_name}` ({len(chain)} nodes, order {chain.order})")
    return {"ok": True, "data": {"model": model_name, "order": chain.order, "nodes": len(chain)}}
