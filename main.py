import logging
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Body, Depends, FastAPI, HTTPException, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, Field
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

import database
import settings
from schemas import (
    Address as AddressSchema,
    CartItem as CartItemSchema,
    Order as OrderSchema,
    User as UserSchema,
)
from security import (
    clear_session_cookie,
    create_session_token,
    get_current_user,
    hash_password,
    set_session_cookie,
    verify_password,
)

# Logging
logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s %(message)s")
logger = logging.getLogger("ecommerce")

if settings.JWT_SECRET == settings.DEFAULT_JWT_SECRET:
    logger.warning("JWT_SECRET is not set, using the development secret")

app = FastAPI(title="Ecommerce API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error handlers
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": "Invalid request body", "errors": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(PyMongoError)
async def database_exception_handler(request: Request, exc: PyMongoError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "message": "Internal server error"})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error: %s", exc)
    return JSONResponse(status_code=500, content={"success": False, "message": "Internal server error"})


# Auth models
class SignupInput(BaseModel):
    Username: Optional[str] = None
    Name: Optional[str] = None
    Email: str = Field(..., min_length=1)
    Password: str = Field(..., min_length=1)
    Gender: Optional[str] = None
    Address: List[dict] = []
    Phone_Number: Optional[Union[int, str]] = None


class LoginInput(BaseModel):
    email: str = Field(validation_alias=AliasChoices("email", "Email"))
    password: str = Field(validation_alias=AliasChoices("password", "Password"))


class ProfileInput(BaseModel):
    Name: Optional[str] = None
    Email: Optional[str] = None
    Gender: Optional[str] = None
    Phone_Number: Optional[Union[int, str]] = None


def user_id_of(current_user: Dict[str, Any]) -> str:
    return current_user["id"]


# Auth
@app.post("/signup", status_code=201)
def signup(payload: SignupInput, response: Response):
    if database.find_user_by_email(payload.Email):
        raise HTTPException(status_code=409, detail="Email already exists")
    data = payload.model_dump()
    data["Password"] = hash_password(payload.Password)
    user_doc = UserSchema(**data).model_dump()
    user_id = database.create_user(user_doc)
    user_doc["_id"] = user_id
    logger.info("Created account %s", user_id)
    set_session_cookie(response, create_session_token(user_id, payload.Email))
    return {"success": True, "user": database.public_user(user_doc)}


@app.post("/login")
def login(payload: LoginInput, response: Response):
    user = database.find_user_by_email(payload.email)
    if not user or not verify_password(payload.password, user.get("Password", "")):
        logger.info("Failed login for %s", payload.email)
        raise HTTPException(status_code=401, detail="Invalid credentials")
    set_session_cookie(response, create_session_token(user["_id"], user.get("Email")))
    return {"success": True, "user": database.public_user(user)}


@app.post("/logout")
def logout(response: Response, current_user: dict = Depends(get_current_user)):
    clear_session_cookie(response)
    return {"success": True}


# Profile
@app.get("/api/user/profile")
def profile(current_user: dict = Depends(get_current_user)):
    user = database.find_user(user_id_of(current_user))
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return {"success": True, "user": database.public_user(user)}


@app.post("/updateprofile")
def update_profile(payload: ProfileInput, current_user: dict = Depends(get_current_user)):
    if not payload.Name or not payload.Email or not payload.Phone_Number:
        return {"success": False, "message": "All fields are required"}
    user_id = user_id_of(current_user)
    if database.email_taken(payload.Email, exclude_id=user_id):
        return {"success": False, "message": "This email already exists!"}
    matched, modified = database.update_profile(user_id, payload.model_dump())
    if not matched:
        raise HTTPException(status_code=404, detail="User not found")
    if modified:
        return {"success": True, "message": "Profile updated successfully"}
    return {"success": True, "message": "No changes detected"}


# Cart
class CartProductInput(BaseModel):
    productId: Union[int, str]


class CheckoutLine(BaseModel):
    productId: Union[int, str]
    quantity: int = Field(..., ge=1)


class CheckoutInput(BaseModel):
    cart: List[CheckoutLine]


@app.post("/add-To-Cart")
def add_to_cart(item: CartItemSchema, current_user: dict = Depends(get_current_user)):
    line = item.model_dump(exclude={"quantity"})
    if not database.add_cart_item(user_id_of(current_user), line):
        raise HTTPException(status_code=404, detail="User not found")
    return {"success": True}


@app.get("/CartPage")
def cart_page(current_user: dict = Depends(get_current_user)):
    cart = database.get_cart(user_id_of(current_user))
    if cart is None:
        raise HTTPException(status_code=404, detail="User not found")
    return cart


@app.post("/remove-From-Cart")
def remove_from_cart(payload: CartProductInput, current_user: dict = Depends(get_current_user)):
    if database.remove_cart_item(user_id_of(current_user), payload.productId):
        return {"message": "Item removed from cart", "success": True}
    return {"message": "Item not found in cart", "success": False}


@app.post("/EmptyCart")
def empty_cart(current_user: dict = Depends(get_current_user)):
    if database.empty_cart(user_id_of(current_user)):
        return {"message": "Cart Is Empty", "success": True}
    return {"message": "Error during Emptying the Cart", "success": False}


@app.post("/checkout")
def checkout(payload: CheckoutInput, current_user: dict = Depends(get_current_user)):
    failed = database.set_cart_quantities(user_id_of(current_user), [line.model_dump() for line in payload.cart])
    if failed:
        return {"message": "Some cart items were not found", "success": False, "failed": failed}
    return {"message": "Cart updated successfully", "success": True, "failed": []}


# Orders
class CancelOrderInput(BaseModel):
    OrderId: Union[int, str]
    CancelDate: Optional[str] = None


@app.post("/Order")
def place_order(order: OrderSchema, current_user: dict = Depends(get_current_user)):
    data = order.model_dump()
    if not data.get("OrderedDate"):
        data["OrderedDate"] = database.now_iso()
    if database.push_order(user_id_of(current_user), data):
        return {"message": "Order placed successfully", "success": True}
    return {"message": "User not found", "success": False}


@app.get("/Order")
def list_orders(current_user: dict = Depends(get_current_user)):
    orders = database.get_orders(user_id_of(current_user))
    if orders is None:
        raise HTTPException(status_code=404, detail="User not found")
    return orders


@app.post("/CancelOrder")
def cancel_order(payload: CancelOrderInput, current_user: dict = Depends(get_current_user)):
    if database.cancel_order(user_id_of(current_user), payload.OrderId, payload.CancelDate):
        return {"message": "Order cancelled successfully", "success": True}
    return {"message": "Order not found or already cancelled", "success": False}


# Addresses
@app.post("/AddAddress")
def add_address(address: AddressSchema, current_user: dict = Depends(get_current_user)):
    data = address.model_dump()
    if not data.get("id"):
        data["id"] = database.new_id()
    if database.add_address(user_id_of(current_user), data):
        return {"success": True, "message": "Address Added Successfully", "id": data["id"]}
    return {"success": False, "message": "Error Occured"}


@app.delete("/api/address/{address_id}")
def delete_address(address_id: str, current_user: dict = Depends(get_current_user)):
    if not database.delete_address(user_id_of(current_user), address_id):
        raise HTTPException(status_code=404, detail="Address not found")
    return {"success": True, "message": "Address deleted successfully"}


@app.put("/EditAddress/{address_id}")
def edit_address(address_id: str, updated: Dict[str, Any] = Body(...),
                 current_user: dict = Depends(get_current_user)):
    try:
        found = database.edit_address(user_id_of(current_user), address_id, updated)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    if not found:
        raise HTTPException(status_code=404, detail="Address not found")
    return {"success": True, "message": "Address updated successfully"}


# Diagnostics, mounted only with ENABLE_DEBUG_ROUTES
debug_router = APIRouter()


@debug_router.get("/")
def dump_users():
    return database.dump_users()


@debug_router.post("/")
def insert_user_document(document: Dict[str, Any] = Body(...)):
    inserted_id = database.insert_raw(document)
    return {"success": True, "result": {"insertedId": inserted_id}}


if settings.ENABLE_DEBUG_ROUTES:
    logger.warning("Diagnostic routes GET / and POST / are enabled")
    app.include_router(debug_router)


@app.api_route("/{path:path}", methods=["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"],
               include_in_schema=False)
def route_not_found(request: Request):
    raise HTTPException(status_code=404, detail=f"Route {request.method} {request.url.path} not found")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
