from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from thinkable.adaptive.presets import PRESETS, apply_ui_preset, build_css_variables, normalize_preset_name
from thinkable.auth.dependencies import get_current_user
from thinkable.database import get_db
from thinkable.models.user import User
from thinkable.routes.common import database_unavailable, ensure_database_ready
from thinkable.services import preference_service

router = APIRouter(tags=['presets'])


@router.get('')
def list_presets():
    return [
        {
            'key': key,
            'name': preset.name,
            'description': preset.description,
            'color_scheme': preset.color_scheme,
        }
        for key, preset in PRESETS.items()
    ]


@router.get('/{name}')
def get_preset(name: str):
    key = normalize_preset_name(name)
    if key is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Preset not found.')

    preset = PRESETS[key]
    return {
        'key': key,
        'name': preset.name,
        'description': preset.description,
        'color_scheme': preset.color_scheme,
        'css_variables': build_css_variables(preset),
    }


@router.post('/{name}/apply')
def apply_preset(
    name: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    application = apply_ui_preset(name)
    ensure_database_ready()

    try:
        preference_service.save_preset(db, current_user, application.preset, manual_override=True)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return asdict(application)
