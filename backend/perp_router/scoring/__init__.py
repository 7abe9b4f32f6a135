from perp_router.scoring.venue_scorer import ScoreWeights, VenueScore, VenueScorer, default_venue_score

__all__ = ["ScoreWeights", "VenueScore", "VenueScorer", "default_venue_score"]
