from fastapi import APIRouter, Depends

from krib.api.dependencies import get_current_user
from krib.schemas.user import UserOut

router = APIRouter()


@router.get("/me", response_model=UserOut)
async def me(current_user=Depends(get_current_user)):
    return UserOut.model_validate(current_user)
