from fastapi import Body, FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pathlib import Path
import json
import os

app = FastAPI(title="Mock Checkout API", version="1.0.0")
# Support both local development and Docker
DATA_DIR = Path("/checkout_stub") if os.path.exists("/checkout_stub") else Path(__file__).resolve().parents[1] / "checkout_stub"


def _load(name: str):
    file = DATA_DIR / name
    if not file.exists():
        raise HTTPException(status_code=404, detail="not found")
    return json.loads(file.read_text())


@app.get("/health")
def health(): return {"status": "ok"}

@app.get("/api/checkout/details-by-token/{token}")
def checkout_details(token: str):
    return JSONResponse(content=_load(f"checkout_{token}.json"))

@app.get("/api/user/user-details")
def current_user():
    return {"success": True, "data": _load("users.json")[0], "error": None}

@app.post("/api/user/user-details")
def user_details(user_ids: list[str] = Body(...)):
    users = [u for u in _load("users.json") if u["user"]["id"] in user_ids]
    return {"success": True, "data": users, "error": None}

@app.post("/api/user/contacts")
def contacts(page: int = 0, size: int = 20, body: dict = Body(default={})):
    term = (body.get("searchTerm") or "").lower()
    excluded = set(body.get("excludeUserIds") or [])
    matches = [
        u["user"] for u in _load("users.json")[1:]
        if u["user"]["id"] not in excluded and term in u["user"]["username"].lower()
    ]
    total_pages = (len(matches) + size - 1) // size
    content = matches[page * size:(page + 1) * size]
    return {
        "success": True,
        "data": {
            "content": content,
            "pageable": {"pageNumber": page, "totalPages": total_pages},
            "last": page + 1 >= total_pages,
        },
        "error": None,
    }

@app.post("/api/user/refresh-tokens")
def refresh_tokens():
    return {"success": True, "data": {"accessToken": "mock-access-token", "inapp": False}}
