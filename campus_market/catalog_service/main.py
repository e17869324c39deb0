# campus_market/catalog_service/main.py
from fastapi import FastAPI, HTTPException, Query

app = FastAPI(title="Catalog Service (dev mock)")


ITEMS = {
    1: {"id": 1, "title": "Calculus textbook", "price": 350, "owner_id": 101,
        "approval_status": "approved", "availability_status": "available", "photos": ["/img/1.jpg"]},
    2: {"id": 2, "title": "Desk lamp", "price": 120, "owner_id": 101,
        "approval_status": "approved", "availability_status": "available", "photos": []},
    3: {"id": 3, "title": "Bicycle", "price": 2500, "owner_id": 102,
        "approval_status": "approved", "availability_status": "sold", "photos": ["/img/3.jpg"]},
    4: {"id": 4, "title": "Lab coat", "price": 200, "owner_id": 103,
        "approval_status": "pending", "availability_status": "available", "photos": []},
}


@app.get("/items/{item_id}")
def get_item(item_id: int):
    item = ITEMS.get(item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Item not found")
    return item


@app.get("/items")
def get_items(ids: str = Query("")):
    wanted = [int(i) for i in ids.split(",") if i.strip()]
    return [ITEMS[i] for i in wanted if i in ITEMS]
