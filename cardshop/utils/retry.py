# cardshop/utils/retry.py
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type
import requests
import redis


#upload do storage: powtarzamy tylko zerwane polaczenie / timeout
#odpowiedz 4xx/5xx wraca od razu i idzie do mapowania na ErrorKind
def http_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.3, min=0.3, max=3),
        retry=retry_if_exception_type(
            (requests.ConnectionError, requests.Timeout)
        ),
    )


#publikacja zdarzenia zmiany, po 3 probach zdarzenie przepada
#zapis w bazie juz jest, lustra po prostu beda nieaktualne
def redis_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type(redis.RedisError),
    )
