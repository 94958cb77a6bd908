import json

import pytest

from parties.exceptions import MemberProfileParseError
from parties.services.track_unification import (
    LastFmRawTrack,
    SpotifyRawTrack,
    StoredRawTrack,
    TrackAggregator,
    UnifiedTrack,
    aggregate_profiles,
    dedup_key,
    normalize_track,
    parse_member_profile,
    parse_raw_track,
    rank_tracks,
)

SPOTIFY_TRACK = {
    "id": "3n3Ppam7vgaVa1iaRUc9Lp",
    "name": "Mr. Brightside",
    "artists": [{"id": "0C0XlULifJtAgn6ZNCW2eu", "name": "The Killers"}, {"name": "Someone Else"}],
    "album": {"name": "Hot Fuss"},
    "popularity": 88,
}

LASTFM_TRACK = {
    "name": "Mr. Brightside",
    "artist": {"name": "The Killers", "mbid": "95e1ead9"},
    "mbid": "7a2b3c4d",
    "playcount": "412",
}


# ---------- dedup key ----------

def test_dedup_key_is_case_insensitive():
    assert dedup_key("Yesterday", "Beatles") == dedup_key("yesterday", "beatles")
    assert dedup_key("Yesterday", "Beatles") == "yesterday-beatles"


def test_dedup_key_does_not_fold_punctuation_or_articles():
    assert dedup_key("Mr. Brightside", "The Killers") != dedup_key("Mr Brightside", "The Killers")
    assert dedup_key("Yesterday", "The Beatles") != dedup_key("Yesterday", "Beatles")


# ---------- raw track variants ----------

def test_parse_raw_track_picks_variant():
    assert isinstance(parse_raw_track(SPOTIFY_TRACK), SpotifyRawTrack)
    assert isinstance(parse_raw_track(LASTFM_TRACK), LastFmRawTrack)
    assert isinstance(parse_raw_track({"name": "Song X", "artist": "Artist Y"}), StoredRawTrack)


def test_normalize_spotify_track_uses_first_artist():
    track = normalize_track(SPOTIFY_TRACK, user_id=7)

    assert track == UnifiedTrack(
        name="Mr. Brightside",
        artist="The Killers",
        album="Hot Fuss",
        sources=[7],
        match_score=1,
        spotify_id="3n3Ppam7vgaVa1iaRUc9Lp",
    )


def test_normalize_lastfm_track_with_artist_object():
    track = normalize_track(LASTFM_TRACK, user_id=3)

    assert track.artist == "The Killers"
    assert track.lastfm_id == "7a2b3c4d"
    assert track.spotify_id is None
    assert track.key == "mr. brightside-the killers"


def test_normalize_lastfm_artist_text_fallback():
    raw = {"name": "Song", "artist": {"#text": "Recent Artist"}, "album": {"#text": "ignored"}}

    track = normalize_track(raw, user_id=1)

    assert track.artist == "Recent Artist"
    assert track.album is None


def test_normalize_artist_defaults_to_unknown():
    assert normalize_track({"name": "Song"}, 1).artist == "Unknown"
    assert normalize_track({"name": "Song", "artist": 42}, 1).artist == "Unknown"
    assert normalize_track({"name": "Song", "artists": []}, 1).artist == "Unknown"


def test_normalize_album_string_or_object():
    assert normalize_track({"name": "A", "artist": "B", "album": "Plain"}, 1).album == "Plain"
    assert normalize_track({"name": "A", "artist": "B", "album": {"name": "Obj"}}, 1).album == "Obj"
    assert normalize_track({"name": "A", "artist": "B"}, 1).album is None


def test_normalize_reads_stored_service_ids():
    raw = {"name": "A", "artist": "B", "spotifyId": "sp1", "lastfmId": "lf1", "appleId": "ap1"}

    track = normalize_track(raw, 1)

    assert (track.spotify_id, track.lastfm_id, track.apple_id) == ("sp1", "lf1", "ap1")


def test_normalize_keeps_ids_on_merged_records_with_playcount():
    raw = {"name": "A", "artist": "B", "spotifyId": "sp1", "appleId": "ap1", "lastfmId": "lf1", "playcount": "3"}

    track = normalize_track(raw, 1)

    assert (track.spotify_id, track.lastfm_id, track.apple_id) == ("sp1", "lf1", "ap1")


def test_normalize_spotify_shape_keeps_lastfm_id():
    track = normalize_track({**SPOTIFY_TRACK, "lastfmId": "lf9"}, 1)

    assert (track.spotify_id, track.lastfm_id) == ("3n3Ppam7vgaVa1iaRUc9Lp", "lf9")


@pytest.mark.parametrize("artist", [{"name": 1975}, {"#text": ["x"]}, {"name": None, "#text": 3}, 42, [{"name": "B"}]])
def test_non_text_artist_falls_back_to_unknown(artist):
    track = normalize_track({"name": "Song", "artist": artist}, 1)

    assert track.artist == "Unknown"
    assert track.key == "song-unknown"


def test_non_text_artist_in_spotify_shape():
    track = normalize_track({"name": "Song", "artists": [{"name": 5}], "album": {"name": 7}}, 1)

    assert (track.artist, track.album) == ("Unknown", None)


@pytest.mark.parametrize("raw", [{"artist": "B"}, {"name": "", "artist": "B"}, {"name": None}, "not a dict", None])
def test_normalize_drops_tracks_without_usable_name(raw):
    assert normalize_track(raw, 1) is None


def test_normalize_is_idempotent():
    assert normalize_track(SPOTIFY_TRACK, 5) == normalize_track(SPOTIFY_TRACK, 5)
    assert normalize_track(LASTFM_TRACK, 5) == normalize_track(LASTFM_TRACK, 5)


# ---------- member profile parsing ----------

def test_parse_member_profile_accepts_json_text_and_lists():
    tracks = [{"name": "Song X", "artist": "Artist Y"}]

    assert parse_member_profile(1, json.dumps(tracks)) == tracks
    assert parse_member_profile(1, tracks) == tracks


@pytest.mark.parametrize("raw", ["{not json", json.dumps({"name": "x"}), "42"])
def test_parse_member_profile_rejects_malformed(raw):
    with pytest.raises(MemberProfileParseError) as exc_info:
        parse_member_profile(9, raw)

    assert exc_info.value.user_id == 9


# ---------- aggregation ----------

def test_two_member_overlap():
    profiles = [
        ("A", json.dumps([{"name": "Song X", "artist": "Artist Y"}])),
        ("B", json.dumps([
            {"name": "Song X", "artist": "Artist Y"},
            {"name": "Song Z", "artist": "Artist W"},
        ])),
    ]

    aggregator = aggregate_profiles(profiles)

    assert len(aggregator) == 2
    song_x = aggregator.tracks["song x-artist y"]
    song_z = aggregator.tracks["song z-artist w"]
    assert (song_x.match_score, song_x.sources) == (2, ["A", "B"])
    assert (song_z.match_score, song_z.sources) == (1, ["B"])
    assert [t.name for t in rank_tracks(aggregator.results())] == ["Song X", "Song Z"]


def test_cross_service_shapes_collapse_to_one_track():
    aggregator = TrackAggregator()
    aggregator.add_member(1, [SPOTIFY_TRACK])
    aggregator.add_member(2, [LASTFM_TRACK])
    aggregator.add_member(3, [{"name": "MR. BRIGHTSIDE", "artist": "the killers", "appleId": "ap9"}])

    assert len(aggregator) == 1
    track = aggregator.results()[0]
    assert track.name == "Mr. Brightside"
    assert track.sources == [1, 2, 3]
    assert track.match_score == 3
    assert (track.spotify_id, track.lastfm_id, track.apple_id) == (
        "3n3Ppam7vgaVa1iaRUc9Lp", "7a2b3c4d", "ap9"
    )


def test_match_score_equals_number_of_sources():
    members = {
        1: [{"name": "a", "artist": "x"}, {"name": "b", "artist": "x"}],
        2: [{"name": "A", "artist": "X"}, {"name": "c", "artist": "y"}],
        3: [{"name": "b", "artist": "x"}, {"name": "a", "artist": "x"}],
    }
    aggregator = aggregate_profiles((uid, tracks) for uid, tracks in members.items())

    for track in aggregator.results():
        assert track.match_score == len(track.sources)
    assert aggregator.tracks["a-x"].match_score == 3


def test_adding_a_member_never_lowers_match_score():
    aggregator = TrackAggregator()
    aggregator.add_member(1, [{"name": "a", "artist": "x"}])
    before = aggregator.tracks["a-x"].match_score

    aggregator.add_member(2, [{"name": "a", "artist": "x"}])

    assert aggregator.tracks["a-x"].match_score == before + 1


def test_malformed_and_missing_profiles_are_skipped():
    aggregator = aggregate_profiles([
        (1, "{broken"),
        (2, None),
        (3, ""),
        (4, json.dumps([{"name": "Only", "artist": "One"}])),
    ])

    assert len(aggregator) == 1
    assert aggregator.members_analyzed == 1
    assert aggregator.skipped_members == [1, 2, 3]
    assert aggregator.results()[0].sources == [4]


def test_nameless_tracks_do_not_enter_the_map():
    aggregator = aggregate_profiles([(1, json.dumps([{"artist": "x"}, {"name": "ok", "artist": "x"}]))])

    assert list(aggregator.tracks) == ["ok-x"]
    assert aggregator.members_analyzed == 1


# ---------- ranking ----------

def _track(name, score):
    return UnifiedTrack(name=name, artist="x", sources=list(range(score)), match_score=score)


def test_rank_orders_by_score_and_keeps_discovery_order_on_ties():
    tracks = [_track("first", 1), _track("second", 3), _track("third", 1), _track("fourth", 3)]

    ranked = rank_tracks(tracks)

    assert [t.name for t in ranked] == ["second", "fourth", "first", "third"]
    assert [t.name for t in rank_tracks(tracks)] == [t.name for t in ranked]


def test_rank_truncates_to_limit():
    tracks = [_track(f"t{i}", 1) for i in range(45)]

    assert len(rank_tracks(tracks)) == 30
    assert len(rank_tracks(tracks, limit=20)) == 20
    assert len(rank_tracks(tracks, limit=None)) == 45
