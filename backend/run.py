import uvicorn

from servicehub.core.config import API_HOST, API_PORT, APP_ENV

if __name__ == "__main__":
    uvicorn.run(
        "servicehub.main:app",
        host=API_HOST,
        port=API_PORT,
        reload=APP_ENV == "development"
    )
