from .playlist_tasks import generate_party_playlist_task
