"""Remote change-feed client for viewers running outside the server.

``SocketIOFeed`` adapts a python-socketio ``Client`` to the ``Feed`` shape a
``MatchView`` expects: subscribe to one match (snapshot + changes) and run
the view's redraw tasks on the client's background-task machinery.
"""
import logging
from typing import Any, Callable, Dict, Optional

import click
import socketio

from scoreboard.services.match.replica import MatchView

logger = logging.getLogger(__name__)

NAMESPACE = '/ws'


class SocketIOFeed:
    def __init__(self, client: Optional[socketio.Client] = None, namespace: str = NAMESPACE):
        self.client = client or socketio.Client()
        self.namespace = namespace
        self._handlers: Dict[str, Dict[str, Callable]] = {}
        self.client.on('match_snapshot', self._dispatch_snapshot, namespace=namespace)
        self.client.on('match_change', self._dispatch_change, namespace=namespace)

    def connect(self, url: str) -> None:
        self.client.connect(url, namespaces=[self.namespace])

    def disconnect(self) -> None:
        self.client.disconnect()

    def subscribe(self, match_id: str, on_snapshot: Callable, on_change: Callable) -> Callable[[], None]:
        # One match per feed connection; the server leaves the old room for us
        self._handlers = {match_id: {'snapshot': on_snapshot, 'change': on_change}}
        self.client.emit('watch_match', {'match_id': match_id}, namespace=self.namespace)

        def unsubscribe() -> None:
            if match_id in self._handlers:
                self._handlers.pop(match_id)
                if self.client.connected:
                    self.client.emit('unwatch_match', {'match_id': match_id}, namespace=self.namespace)

        return unsubscribe

    def start_background_task(self, target: Callable, *args, **kwargs) -> Any:
        return self.client.start_background_task(target, *args, **kwargs)

    def sleep(self, seconds: float) -> None:
        self.client.sleep(seconds)

    def _dispatch_snapshot(self, data: Dict[str, Any]) -> None:
        handlers = self._handlers.get((data or {}).get('match_id'))
        if handlers:
            handlers['snapshot'](data.get('record'))

    def _dispatch_change(self, data: Dict[str, Any]) -> None:
        record = (data or {}).get('record') or {}
        handlers = self._handlers.get(record.get('id'))
        if handlers:
            handlers['change'](data)
        else:
            logger.debug("ignoring change for unwatched match=%s", record.get('id'))


@click.command('watch-overlay')
@click.argument('match_id')
@click.option('--url', default='http://localhost:5000', show_default=True, help='Scoreboard server URL.')
@click.option('--interval', default=1.0, show_default=True, help='Seconds between printed lines.')
def watch_overlay_command(match_id, url, interval):
    """Print a live overlay line for MATCH_ID until interrupted."""
    feed = SocketIOFeed()
    feed.connect(url)
    view = MatchView(feed, clock_interval=interval, card_interval=interval)
    try:
        with view.open(match_id):
            while True:
                overlay = view.overlay()
                if overlay is None:
                    found = view.replica.found if view.replica else None
                    click.echo('match not found' if found is False else 'waiting for snapshot...')
                else:
                    home, away = overlay['home_team'], overlay['away_team']
                    click.echo(
                        f"[{overlay['scoreboard_theme']}] {home['name_abbr']} {home['score']}"
                        f" - {away['score']} {away['name_abbr']}  {overlay['period_label']} {overlay['clock']}"
                        f"  cards H:{len(home['active_cards'])} A:{len(away['active_cards'])}"
                    )
                feed.sleep(interval)
    except KeyboardInterrupt:
        click.echo('stopped')
    finally:
        feed.disconnect()
