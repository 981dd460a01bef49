"""活动目录 CRUD 操作：游戏、周边商品、音乐嵌入"""
import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, col, select

from nexus.api.errors import NotFound, PersistenceError, ValidationError
from nexus.crud.points import credit_points, get_balance
from nexus.enums import MusicProvider, PointTransactionType
from nexus.models import Game, GamePlay, MerchItem, MusicEmbed
from nexus.services.embeds import validate_source_url

logger = logging.getLogger(__name__)


# ============================================================
# 游戏
# ============================================================


@dataclass
class PlayResult:
    game: Game
    first_play: bool
    points_awarded: int
    balance: int


def list_games(*, session: Session) -> list[Game]:
    return list(session.exec(select(Game).order_by(col(Game.created_at).desc())).all())


def get_game(*, session: Session, game_id: int) -> Game:
    game = session.get(Game, game_id)
    if not game:
        raise NotFound("Game not found", code=404201)
    return game


def create_game(
    *,
    session: Session,
    title: str,
    game_url: str,
    created_by: int,
    description: str | None = None,
    thumbnail_url: str | None = None,
    points_reward: int = 10,
) -> Game:
    if not game_url.startswith("https://"):
        raise ValidationError("Game URL must use https", code=400501, field="game_url")
    if points_reward < 0:
        raise ValidationError("Reward cannot be negative", code=400502, field="points_reward")
    game = Game(
        title=title.strip(),
        description=description,
        game_url=game_url,
        thumbnail_url=thumbnail_url,
        points_reward=points_reward,
        created_by=created_by,
    )
    session.add(game)
    session.commit()
    session.refresh(game)
    return game


def delete_game(*, session: Session, game: Game) -> None:
    session.delete(game)
    session.commit()


def record_game_play(*, session: Session, user_id: int, game: Game) -> PlayResult:
    """
    记录游玩并发放首次奖励

    GamePlay 的 (user_id, game_id) 唯一约束决定是否首次游玩，
    插入与加分在同一个事务中提交；重复游玩不加分。
    """
    reward = game.points_reward
    game_id = game.id
    session.add(GamePlay(user_id=user_id, game_id=game_id, points_awarded=reward))
    try:
        session.flush()
    except IntegrityError:
        session.rollback()
        return PlayResult(
            game=get_game(session=session, game_id=game_id),
            first_play=False,
            points_awarded=0,
            balance=get_balance(session=session, user_id=user_id),
        )

    try:
        if reward > 0:
            balance = credit_points(
                session=session,
                user_id=user_id,
                amount=reward,
                tx_type=PointTransactionType.earn,
                reason="game_play",
                reference_id=game_id,
                commit=False,
            )
        else:
            balance = get_balance(session=session, user_id=user_id)
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Failed to record play of game %s for user %s", game_id, user_id)
        raise PersistenceError()

    return PlayResult(
        game=get_game(session=session, game_id=game_id),
        first_play=True,
        points_awarded=reward,
        balance=balance,
    )


# ============================================================
# 周边商品
# ============================================================


def list_merch(*, session: Session) -> list[MerchItem]:
    return list(session.exec(select(MerchItem).order_by(col(MerchItem.created_at).desc())).all())


def get_merch(*, session: Session, item_id: int) -> MerchItem:
    item = session.get(MerchItem, item_id)
    if not item:
        raise NotFound("Item not found", code=404301)
    return item


def create_merch(
    *,
    session: Session,
    name: str,
    price: Decimal,
    stock: int = 0,
    description: str | None = None,
    image_urls: list[str] | None = None,
) -> MerchItem:
    if price < 0:
        raise ValidationError("Price cannot be negative", code=400601, field="price")
    if stock < 0:
        raise ValidationError("Stock cannot be negative", code=400602, field="stock")
    item = MerchItem(
        name=name.strip(),
        description=description,
        price=price,
        stock=stock,
        image_urls=list(image_urls or []),
    )
    session.add(item)
    session.commit()
    session.refresh(item)
    return item


def delete_merch(*, session: Session, item: MerchItem) -> None:
    session.delete(item)
    session.commit()


# ============================================================
# 音乐嵌入
# ============================================================


def list_music(*, session: Session, owner_id: int | None = None) -> list[MusicEmbed]:
    stmt = select(MusicEmbed)
    if owner_id is not None:
        stmt = stmt.where(MusicEmbed.owner_id == owner_id)
    return list(session.exec(stmt.order_by(col(MusicEmbed.created_at).desc())).all())


def get_music(*, session: Session, embed_id: int) -> MusicEmbed:
    embed = session.get(MusicEmbed, embed_id)
    if not embed:
        raise NotFound("Music embed not found", code=404401)
    return embed


def create_music(
    *, session: Session, owner_id: int, title: str, provider: MusicProvider, source_url: str
) -> MusicEmbed:
    validate_source_url(provider, source_url)
    embed = MusicEmbed(
        owner_id=owner_id, title=title.strip(), provider=provider, source_url=source_url
    )
    session.add(embed)
    session.commit()
    session.refresh(embed)
    return embed


def delete_music(*, session: Session, embed: MusicEmbed) -> None:
    session.delete(embed)
    session.commit()
