"""GlobalMind Quiz: an adaptive, model-driven trivia game."""
