from fastapi import APIRouter

from app.api.v1.endpoints import (
    # Access Control
    auth,
    admin_users,
    # Booking
    bookings,
    consignment,
    pincode,
    otp,
    # Back office
    admin_bookings,
    admin_consignment,
    admin_pincodes,
    coloaders,
    employees,
    pricing,
)


# Create main API router
api_router = APIRouter(prefix="/api")

# ==================== Access Control ====================
api_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["Authentication"]
)
api_router.include_router(
    admin_users.router,
    prefix="/admin/users",
)

# ==================== Booking ====================
api_router.include_router(
    bookings.router,
    prefix="/bookings",
    tags=["Bookings"]
)
api_router.include_router(
    consignment.router,
    prefix="/consignment",
)
api_router.include_router(
    pincode.router,
    prefix="/pincode",
)
api_router.include_router(
    otp.router,
    prefix="/otp",
)

# ==================== Back Office ====================
api_router.include_router(
    admin_bookings.router,
    prefix="/admin/bookings",
)
api_router.include_router(
    coloaders.booking_router,
    prefix="/admin/bookings",
)
api_router.include_router(
    admin_pincodes.router,
    prefix="/admin/pincodes",
)
api_router.include_router(
    coloaders.router,
    prefix="/admin/coloaders",
)
api_router.include_router(
    employees.router,
    prefix="/admin/employees",
)
api_router.include_router(
    pricing.customer_router,
    prefix="/admin/customer-pricing",
)
api_router.include_router(
    pricing.corporate_router,
    prefix="/admin/corporate-pricing",
)
api_router.include_router(
    pricing.public_router,
    prefix="/admin/public",
)
api_router.include_router(
    admin_consignment.router,
    prefix="/admin/consignment",
)
