import sys
import logging
import uvicorn

logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=logging.INFO,
    handlers=[logging.StreamHandler(sys.stdout)]
)


def main():
    print("Starting API server...")
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000)


if __name__ == '__main__':
    main()
