from battles.views.battle_handlers import (
    create_battle as create_battle,
)
from battles.views.battle_handlers import (
    forfeit_battle as forfeit_battle,
)
from battles.views.battle_handlers import (
    get_battle as get_battle,
)
from battles.views.battle_handlers import (
    join_battle as join_battle,
)
from battles.views.battle_handlers import (
    list_battles as list_battles,
)
from battles.views.battle_handlers import (
    list_turns as list_turns,
)
from battles.views.battle_handlers import (
    player_stats as player_stats,
)
from battles.views.battle_handlers import (
    poll_battle as poll_battle,
)
from battles.views.battle_handlers import (
    submit_turn as submit_turn,
)
from battles.views.identity_handlers import register as register
