"""HTTP endpoints for diff, merge and share operations."""

import logging

from fastapi import APIRouter, HTTPException

from prefsync.api.models import ApplyRequest, DecodeRequest, DiffRequest, EncodeRequest, MergeRequest
from prefsync.config import Settings
from prefsync.reconcile.diff import compute_diff, compute_priority_comparison
from prefsync.reconcile.merge import merge_preference_sets, merge_preference_sets_selective
from prefsync.schema.models import PreferenceSet
from prefsync.share.codec import ShareCodec, SharePayload
from prefsync.share.url import build_share_url, build_share_url_v2, extract_and_decode_from_url

logger = logging.getLogger(__name__)

router = APIRouter()

# These will be injected at app startup
_settings: Settings | None = None
_codec: ShareCodec | None = None


def configure(settings: Settings, codec: ShareCodec) -> None:
    global _settings, _codec
    _settings = settings
    _codec = codec


def _decode(body: DecodeRequest) -> SharePayload | None:
    if body.payload:
        return _codec.decode(body.payload)
    if body.url:
        return extract_and_decode_from_url(body.url, _codec)
    raise HTTPException(status_code=422, detail="Provide a payload or url")


@router.post("/diff")
def diff(body: DiffRequest):
    """Classify topics of ``right`` against ``left`` and flatten priorities."""
    return {
        "diff": compute_diff(body.left, body.right),
        "priorities": compute_priority_comparison(body.left, body.right),
    }


@router.post("/merge", response_model=PreferenceSet, response_model_by_alias=True)
def merge(body: MergeRequest):
    separator = _settings.notes_separator
    if body.accept_titles is not None:
        logger.info("Selective merge of %d accepted topics", len(body.accept_titles))
        return merge_preference_sets_selective(
            body.current, body.incoming, body.accept_titles, notes_separator=separator
        )
    return merge_preference_sets(body.current, body.incoming, notes_separator=separator)


@router.post("/share/encode")
def share_encode(body: EncodeRequest):
    if body.legacy:
        payload = _codec.encode_dense(body.topics)
        url = build_share_url(payload, _settings.share_base_url)
    else:
        payload = _codec.encode(body.topics)
        url = build_share_url_v2(payload, _settings.share_base_url)
    return {"payload": payload, "url": url}


@router.post("/share/decode")
def share_decode(body: DecodeRequest):
    """Decode a payload; ``null`` means there is no shareable state in it."""
    return {"payload": _decode(body)}


@router.post("/share/apply")
def share_apply(body: ApplyRequest):
    decoded = _decode(body)
    if decoded is None:
        raise HTTPException(status_code=422, detail="Unrecognized share payload")
    result = _codec.apply(decoded, body.topics)
    return {"applied": result.applied, "topics": result.topics}
