# carscout/main.py
import os
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from carscout.api.routes import router as api_router
from carscout.utils import env_list, logger

# create FastAPI instance
app = FastAPI(title="carscout")

app.add_middleware(
    CORSMiddleware,
    allow_origins=env_list("CORS_ORIGINS", ["*"]),
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(api_router)


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "3001"))
    logger.info("Car scraper service running on port %d", port)
    uvicorn.run(app, host="0.0.0.0", port=port)
