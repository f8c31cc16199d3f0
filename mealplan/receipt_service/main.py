# mealplan/receipt_service/main.py
import uuid

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.responses import Response

app = FastAPI(title="Receipt Service (dev mock)")


RECEIPTS: dict = {}


@app.post("/receipts", status_code=201)
async def upload_receipt(customer_id: int = Form(...), file: UploadFile = File(...)):
    reference = f"receipt-{customer_id}-{uuid.uuid4().hex[:12]}"
    RECEIPTS[reference] = {
        "content_type": file.content_type,
        "filename": file.filename,
        "data": await file.read(),
    }
    return {"reference": reference}


@app.get("/receipts/{reference}")
def get_receipt(reference: str):
    receipt = RECEIPTS.get(reference)
    if not receipt:
        raise HTTPException(status_code=404, detail="Receipt not found")
    return Response(content=receipt["data"], media_type=receipt["content_type"])
