from routes.waitlist import router as waitlist_router

__all__ = ["waitlist_router"]
