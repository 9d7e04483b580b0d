from fastapi import APIRouter, Request

from camper.api.templating import render

router = APIRouter()


@router.get("/")
async def home(request: Request):
    return render(request, "home.html")
