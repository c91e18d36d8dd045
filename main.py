from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from linkscanner.api.routes import router
from linkscanner.core.config import settings

app = FastAPI(title="Broken Link Scanner")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
