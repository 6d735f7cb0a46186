# sdk/estore.py
from typing import Any, Dict, Optional

import httpx
import requests


class StoreAPIError(Exception):
    def __init__(self, status_code: int, detail: Any):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"HTTP {status_code}: {detail}")


class StoreClient:
    def __init__(
        self,
        base_url: str = "http://localhost:8085",
        token: Optional[str] = None,
        timeout: int = 10,
        session=None,
    ):
        self.base_url = base_url.rstrip("/")
        # any requests.Session-like object works (tests pass a TestClient)
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.user: Optional[Dict[str, Any]] = None
        self.token: Optional[str] = None
        if token:
            self.set_token(token)

    def set_token(self, token: Optional[str]):
        self.token = token
        if token:
            self.session.headers.update({"Authorization": f"Bearer {token}"})
        else:
            self.session.headers.pop("Authorization", None)

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _handle(self, r):
        if r.status_code >= 400:
            try:
                detail = r.json().get("detail")
            except ValueError:
                detail = r.text
            raise StoreAPIError(r.status_code, detail)
        return r.json()

    # Auth
    def signup(self, name: str, email: str, password: str):
        r = self.session.post(self._url("/signup"), json={
            "name": name, "email": email, "password": password
        }, timeout=self.timeout)
        return self._handle(r)

    def login(self, email: str, password: str):
        r = self.session.post(self._url("/login"), json={"email": email, "password": password}, timeout=self.timeout)
        body = self._handle(r)
        self.user = body["user"]
        self.set_token(body["access_token"])
        return body

    def logout(self):
        self.user = None
        self.set_token(None)

    def me(self):
        r = self.session.get(self._url("/me"), timeout=self.timeout)
        return self._handle(r)

    # Products
    def list_products(
        self,
        search: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        category: Optional[str] = None,
    ):
        params = {}
        if search:
            params["search"] = search
        if min_price is not None:
            params["minPrice"] = min_price
        if max_price is not None:
            params["maxPrice"] = max_price
        if category:
            params["category"] = category
        r = self.session.get(self._url("/products"), params=params, timeout=self.timeout)
        return self._handle(r)

    def get_product(self, product_id: int):
        r = self.session.get(self._url(f"/products/{product_id}"), timeout=self.timeout)
        return self._handle(r)

    def create_product(self, name: str, price: float, stock: int, description: str = "", category: str = ""):
        r = self.session.post(self._url("/products"), json={
            "name": name, "price": price, "stock": stock, "description": description, "category": category
        }, timeout=self.timeout)
        return self._handle(r)

    def update_product(self, product_id: int, **changes):
        r = self.session.put(self._url(f"/products/{product_id}"), json=changes, timeout=self.timeout)
        return self._handle(r)

    def delete_product(self, product_id: int):
        r = self.session.delete(self._url(f"/products/{product_id}"), timeout=self.timeout)
        return self._handle(r)

    # Orders
    def place_order(self, product_id: int, quantity: int, delivery_address: str, user_id: Optional[int] = None):
        payload = {"product_id": product_id, "quantity": quantity, "delivery_address": delivery_address}
        if user_id is not None:
            payload["user_id"] = user_id
        r = self.session.post(self._url("/orders"), json=payload, timeout=self.timeout)
        return self._handle(r)

    async def place_order_async(self, product_id: int, quantity: int, delivery_address: str):
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        payload = {"product_id": product_id, "quantity": quantity, "delivery_address": delivery_address}
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.post(self._url("/orders"), json=payload, headers=headers)
            return self._handle(r)

    def list_orders(self):
        r = self.session.get(self._url("/orders"), timeout=self.timeout)
        return self._handle(r)

    def update_order_status(self, order_id: int, status: str):
        r = self.session.put(self._url(f"/orders/{order_id}/status"), json={"status": status}, timeout=self.timeout)
        return self._handle(r)

    def cancel_order(self, order_id: int):
        r = self.session.delete(self._url(f"/orders/{order_id}"), timeout=self.timeout)
        return self._handle(r)


if __name__ == "__main__":
    import argparse
    import json
    import os

    parser = argparse.ArgumentParser(description="estore API client")
    parser.add_argument("--base-url", default=os.getenv("ESTORE_API_URL", "http://127.0.0.1:8085"))
    parser.add_argument("--token", default=os.getenv("ESTORE_TOKEN"))
    subparsers = parser.add_subparsers(dest="command", required=True)

    lp = subparsers.add_parser("list-products", help="List products")
    lp.add_argument("--search")
    lp.add_argument("--category")
    lp.add_argument("--min-price", type=float)
    lp.add_argument("--max-price", type=float)

    gp = subparsers.add_parser("get-product", help="Get a product by its ID")
    gp.add_argument("--product-id", type=int, required=True)

    li = subparsers.add_parser("login", help="Log in and print an access token")
    li.add_argument("--email", required=True)
    li.add_argument("--password", required=True)

    po = subparsers.add_parser("place-order", help="Buy a product (needs --token)")
    po.add_argument("--product-id", type=int, required=True)
    po.add_argument("--qty", type=int, default=1)
    po.add_argument("--address", required=True)

    subparsers.add_parser("list-orders", help="List your orders (needs --token)")

    co = subparsers.add_parser("cancel-order", help="Cancel an order (needs --token)")
    co.add_argument("--order-id", type=int, required=True)

    args = parser.parse_args()
    c = StoreClient(base_url=args.base_url, token=args.token)

    try:
        if args.command == "list-products":
            out = c.list_products(args.search, args.min_price, args.max_price, args.category)
        elif args.command == "get-product":
            out = c.get_product(args.product_id)
        elif args.command == "login":
            out = c.login(args.email, args.password)
        elif args.command == "place-order":
            out = c.place_order(args.product_id, args.qty, args.address)
        elif args.command == "list-orders":
            out = c.list_orders()
        elif args.command == "cancel-order":
            out = c.cancel_order(args.order_id)
        print(json.dumps(out, indent=2))
    except StoreAPIError as e:
        print(f"Error: {e}")
        raise SystemExit(1)
