"""Study Snap: turn selected study text into summaries, flashcards and quizzes."""
