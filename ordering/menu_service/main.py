# ordering/menu_service/main.py
from fastapi import FastAPI, HTTPException

app = FastAPI(title="Menu Service (dev mock)")


MENU_ITEMS = {
    "margherita": {"id": "margherita", "restaurant_id": "napoli", "name": "Pizza Margherita", "price": "7.99"},
    "calzone": {"id": "calzone", "restaurant_id": "napoli", "name": "Calzone", "price": "9.50"},
    "pad-thai": {"id": "pad-thai", "restaurant_id": "bangkok", "name": "Pad Thai", "price": "11.25"},
}


@app.get("/menu-items/{menu_item_id}")
def get_menu_item(menu_item_id: str):
    item = MENU_ITEMS.get(menu_item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Menu item not found")
    return item
