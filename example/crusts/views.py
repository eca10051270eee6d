from __future__ import annotations

from dataclasses import asdict
from functools import lru_cache

from django.http import HttpRequest, HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from crust_data import CrustData, CrustEntity, CrustNotFound, OutOfStock, RetriesExhausted


@lru_cache(maxsize=None)
def get_crusts() -> CrustData:
    """
    One CrustData per process, built from settings.CRUST_DATA on first use.

    Sharing the instance means table creation and seeding run once per
    process, no matter how many requests arrive concurrently.
    """
    return CrustData()


def _row(entity: CrustEntity) -> dict:
    payload = asdict(entity)
    payload.pop("partition_key")
    payload.pop("etag")
    return payload


def _json(
    ok: bool, *, crust_id: str, detail: str | None = None, status: int = 200, **extra
) -> JsonResponse:
    """
    Small helper to keep responses consistent across endpoints.
    """
    payload = {"ok": ok, "id": crust_id, **extra}
    if detail:
        payload["detail"] = detail
    return JsonResponse(payload, status=status)


@require_GET
def list_crusts(request: HttpRequest) -> HttpResponse:
    rows = get_crusts().list()
    return JsonResponse({"crusts": [_row(row) for row in rows]})


@csrf_exempt  # demo-only: curl-friendly
@require_POST
def decrement_stock(request: HttpRequest, crust_id: str) -> HttpResponse:
    """
    Take one crust out of stock.

    Out of stock is reported as 409 with the row unchanged. Losing the
    optimistic retry race too many times is also a 409 (busy, try again).
    """
    try:
        entity = get_crusts().decrement_stock(crust_id)
    except OutOfStock:
        return _json(
            False, crust_id=crust_id, stock_count=0, detail="out of stock", status=409
        )
    except CrustNotFound:
        return _json(False, crust_id=crust_id, detail="not found", status=404)
    except RetriesExhausted:
        return _json(False, crust_id=crust_id, detail="busy, try again", status=409)

    return _json(True, crust_id=crust_id, stock_count=entity.stock_count)
