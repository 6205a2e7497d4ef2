from billing_invoicer.config import Config
from billing_invoicer.server import serve

if __name__ == "__main__":
    serve(Config())
