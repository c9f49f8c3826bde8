import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Comma separated list of allowed browser origins
    FRONTEND_URL = os.environ.get('FRONTEND_URL') or 'http://localhost:3000'
    PORT = int(os.environ.get('PORT', '3001'))
    # Legal deliveries per innings (wides/no-balls are re-bowled on top)
    BALL_QUOTA = int(os.environ.get('BALL_QUOTA', '6'))
    # Wickets that end an innings
    WICKET_QUOTA = int(os.environ.get('WICKET_QUOTA', '3'))
