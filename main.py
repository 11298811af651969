from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from quizpath.core.config import settings
from quizpath.core.logging import configure_logging
from quizpath.endpoints import attempt, questionnaire
from quizpath.middleware.exceptions import global_exception_handler, http_exception_handler, validation_exception_handler
from quizpath.services.feedback import feedback_service

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)

app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)

app.include_router(questionnaire.router, prefix="/questionnaires", tags=["Questionnaires"])
app.include_router(attempt.router, prefix="/attempts", tags=["Attempts"])

@app.on_event("startup")
async def startup_event():
    configure_logging()

@app.on_event("shutdown")
async def shutdown_event():
    await feedback_service.wait_for_pending()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
