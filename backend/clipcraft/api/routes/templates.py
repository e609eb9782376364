from fastapi import APIRouter

from ...services import list_styles

router = APIRouter(prefix="/templates", tags=["templates"])


@router.get("")
async def get_templates():
    """List caption templates."""
    return [style.model_dump() for style in list_styles()]
