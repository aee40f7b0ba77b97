"""storyloop — launcher. Starts the game in the current terminal."""

from storyloop.game import main

if __name__ == "__main__":
    main()
