"""
游戏路由模块

- 列表（已订阅用户）
- 新增、删除（管理员）
- 开始游玩：首次游玩某个游戏时发放积分
"""
from __future__ import annotations

from fastapi import APIRouter

from nexus.api.deps import AdminUser, SessionDep, SubscribedUser
from nexus.api.schemas import ApiEnvelope, GameCreateRequest, GamePlayData, GamePublic, Message
from nexus.crud import catalog
from nexus.models import Game
from nexus.services.config_service import default_game_reward

router = APIRouter(prefix="/games", tags=["games"])


def _game_public(game: Game) -> GamePublic:
    return GamePublic(
        id=game.id,
        title=game.title,
        description=game.description,
        game_url=game.game_url,
        thumbnail_url=game.thumbnail_url,
        points_reward=game.points_reward,
        created_at=game.created_at,
    )


@router.get("", response_model=ApiEnvelope)
def list_games(session: SessionDep, _: SubscribedUser) -> ApiEnvelope:
    return ApiEnvelope(data=[_game_public(g) for g in catalog.list_games(session=session)])


@router.post("", response_model=ApiEnvelope)
def create_game(session: SessionDep, admin: AdminUser, body: GameCreateRequest) -> ApiEnvelope:
    game = catalog.create_game(
        session=session,
        title=body.title,
        description=body.description,
        game_url=body.game_url,
        thumbnail_url=body.thumbnail_url,
        points_reward=body.points_reward if body.points_reward is not None else default_game_reward(),
        created_by=admin.id,
    )
    return ApiEnvelope(data=_game_public(game))


@router.delete("/{game_id}", response_model=ApiEnvelope)
def delete_game(session: SessionDep, _: AdminUser, game_id: int) -> ApiEnvelope:
    game = catalog.get_game(session=session, game_id=game_id)
    catalog.delete_game(session=session, game=game)
    return ApiEnvelope(data=Message(message="Game deleted"))


@router.post("/{game_id}/play", response_model=ApiEnvelope)
def play_game(session: SessionDep, current_user: SubscribedUser, game_id: int) -> ApiEnvelope:
    """
    开始游玩

    首次游玩奖励 points_reward 积分，之后再玩不奖励。

    请求路径: POST /api/v1/games/{game_id}/play
    """
    game = catalog.get_game(session=session, game_id=game_id)
    result = catalog.record_game_play(session=session, user_id=current_user.id, game=game)
    return ApiEnvelope(
        data=GamePlayData(
            game=_game_public(result.game),
            first_play=result.first_play,
            points_awarded=result.points_awarded,
            balance=result.balance,
        )
    )
