"""LaserForce game modes."""

from laserscore.events import Event, EventType, counters, record_player_hit
from laserscore.models.game import Player
from laserscore.modes.base import CustomEventsMode
from laserscore.modes.generic import TeamDeathmatch


class LaserBall(TeamDeathmatch, CustomEventsMode):
    """Laser game football. Ball handling arrives as mode-action events."""

    name = "Laser ball"
    description = "Laser game football!"

    def process_event(self, event: Event) -> None:
        actor = event.actor1
        kind = event.type

        if kind == EventType.MODE_ACTION_1:
            receiver = event.require_player2("LaserBall pass")
            actor.shots += 1
            counters(actor).laser_ball.passes += 1
            counters(receiver).laser_ball.ball_got += 1

        elif kind == EventType.MODE_ACTION_2:
            actor.shots += 1
            counters(actor).laser_ball.goals += 1

        elif kind == EventType.MODE_ACTION_4:
            victim = event.require_player2("LaserBall steal")
            actor.shots += 1
            counters(actor).laser_ball.steals += 1
            counters(victim).laser_ball.lost += 1
            record_player_hit(actor, victim)

        elif kind == EventType.MODE_ACTION_5:
            target = event.require_actor2("Hit")
            if isinstance(target, Player):
                actor.shots += 1
                record_player_hit(actor, target)
            else:
                counters(actor).target_hits += 1
                target.hits += 1

        elif kind == EventType.MODE_ACTION_6:
            if event.game is not None:
                event.game.rounds += 1

        elif kind == EventType.MODE_ACTION_8:
            counters(actor).laser_ball.ball_got += 1

        elif kind == EventType.MODE_ACTION_10:
            receiver = event.require_player2("LaserBall clear")
            actor.shots += 1
            counters(actor).laser_ball.clears += 1
            counters(receiver).laser_ball.ball_got += 1
