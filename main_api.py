import logging
from functools import lru_cache
from fastapi import Depends, FastAPI, UploadFile, File, Form, HTTPException
from start_shape_service import StartShapeService

# --- CENTRALIZED LOGGING CONFIGURATION ---
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

app = FastAPI(title="Pinned Start Shape Service")

@lru_cache(maxsize=1)
def get_service() -> StartShapeService:
    """A single, shared service instance so models are loaded only once."""
    return StartShapeService()

@app.post("/start_shape")
async def start_shape(
    file: UploadFile = File(...),
    landmarks: str = Form(...),
    service: StartShapeService = Depends(get_service)
):
    """
    Builds a start shape from manually pinned landmarks.
    `landmarks` is a JSON list with one [x, y] or null per model landmark.
    """
    if not file.content_type or not file.content_type.startswith('image/'):
        raise HTTPException(status_code=400, detail="Only image files are supported.")

    image_bytes = await file.read()
    try:
        result = service.start_shape(image_bytes, landmarks)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if result['status'] == 'error':
        raise HTTPException(status_code=422, detail=result['message']) # 422 Unprocessable
    return result

@app.get("/")
def read_root():
    return {"message": "Welcome to the Pinned Start Shape Service API"}

# To run this application:
# 1. Build or copy the shape model files listed in config.yaml into models/.
# 2. Run the command: uvicorn main_api:app --reload
