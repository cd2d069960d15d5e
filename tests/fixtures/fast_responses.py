# ABOUTME: Canned FAST suggest responses for testing the FAST adapter.
# ABOUTME: Docs carry auth/tag labels, id/idroot identifiers, facet types, and scores.

SPACE_OPERA_RESPONSE = {
    "response": {
        "numFound": 3,
        "docs": [
            {
                "idroot": "fst01128420",
                "auth": "Space opera",
                "type": "genre",
                "score": 12.5,
            },
            {
                "id": "fst01919876",
                "auth": "Interstellar travel",
                "type": "topic",
                "score": 8.0,
            },
            {
                "idroot": ["fst00000001"],
                "tag": ["Space Opera"],
                "type": "genre",
                "score": 3.1,
            },
        ],
    }
}

GEOGRAPHIC_RESPONSE = {
    "response": {
        "docs": [
            {"idroot": "fst01204155", "auth": "Mars (Planet)", "type": "geographic"},
        ]
    }
}

EMPTY_RESPONSE = {"response": {"numFound": 0, "docs": []}}
