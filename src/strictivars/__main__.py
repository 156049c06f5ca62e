from strictivars.run.transform import app

if __name__ == "__main__":
    app()
