from gridiron import create_app, db
from gridiron.models import Game, Pick, SeasonStats, User, WeekStats

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "User": User,
        "Game": Game,
        "Pick": Pick,
        "WeekStats": WeekStats,
        "SeasonStats": SeasonStats,
    }


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=app.config.get("DEBUG", False))
